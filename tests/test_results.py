import pandas as pd
import pytest

from conftest import criteria_of, team_named
from errors import ValidationError
from results import (
    CRITERION_COLUMNS, SCORE_COLUMNS, TEAM_COLUMNS, compute_criterion_averages, compute_standings,
    event_results, export_judge_scores_csv, export_results_csv,
)
from scoring import upsert_score


@pytest.fixture
def frames():
    teams = pd.DataFrame([
        (1, 'Alpha', 1, 'technical'),
        (2, 'Beta', 2, 'business'),
        (3, 'Gamma', 3, 'both'),
    ], columns=TEAM_COLUMNS)
    criteria = pd.DataFrame([
        (11, 'Code', 'technical', 60),
        (12, 'Design', 'technical', 40),
        (13, 'Market', 'business', 100),
    ], columns=CRITERION_COLUMNS)
    scores = pd.DataFrame([
        (1, 100, 11, 8.0),
        (1, 100, 12, 6.0),
        (1, 100, 13, 9.0),   # бизнес-критерий для технической команды не считается
        (1, 101, 11, 4.0),
        (1, 101, 12, None),
        (2, 100, 13, 7.0),
    ], columns=SCORE_COLUMNS).astype({'score': 'float64'})
    return teams, criteria, scores


def row(standings, name):
    return standings.loc[standings['team_name'] == name].iloc[0]


def test_standings_order(frames):
    standings = compute_standings(*frames)
    assert standings['team_name'].tolist() == ['Alpha', 'Beta', 'Gamma']


def test_totals_and_averages(frames):
    alpha = row(compute_standings(*frames), 'Alpha')
    assert alpha['total_score'] == 18
    assert alpha['average_score'] == 9
    assert alpha['total_scores'] == 3
    assert alpha['judge_count'] == 2


def test_weighted_score_is_averaged_over_judges(frames):
    standings = compute_standings(*frames)
    # судья 100: 8*0.6 + 6*0.4 = 7.2; судья 101: 4*0.6 = 2.4
    assert row(standings, 'Alpha')['weighted_score'] == pytest.approx(4.8)
    assert row(standings, 'Beta')['weighted_score'] == pytest.approx(7.0)


def test_unscored_team_has_zeros(frames):
    gamma = row(compute_standings(*frames), 'Gamma')
    assert gamma['total_score'] == 0
    assert gamma['judge_count'] == 0


def test_ties_keep_presentation_order():
    teams = pd.DataFrame([(1, 'Late', 2, 'both'), (2, 'Early', 1, 'both')], columns=TEAM_COLUMNS)
    criteria = pd.DataFrame([(11, 'Code', 'technical', 100)], columns=CRITERION_COLUMNS)
    scores = pd.DataFrame([(1, 100, 11, 5.0), (2, 100, 11, 5.0)], columns=SCORE_COLUMNS)

    assert compute_standings(teams, criteria, scores)['team_name'].tolist() == ['Early', 'Late']


def test_criterion_averages(frames):
    averages = compute_criterion_averages(*frames)
    code = averages[(averages['team_id'] == 1) & (averages['criterion_id'] == 11)].iloc[0]
    assert code['average_score'] == 6
    assert code['judge_count'] == 2
    assert not ((averages['team_id'] == 1) & (averages['criterion_id'] == 13)).any()


def score_event(users, event):
    judge_id = users['judge'].id
    alpha = team_named(event, 'Alpha')
    beta = team_named(event, 'Beta')
    for criterion, value in zip(criteria_of(event, 'technical'), [10, 8, 6, 4, 2]):
        upsert_score(judge_id, alpha.id, criterion.id, value)
    for criterion, value in zip(criteria_of(event, 'business'), [9, 9]):
        upsert_score(judge_id, beta.id, criterion.id, value)


def test_event_results(users, active_event):
    score_event(users, active_event)

    results = event_results(active_event.id)

    assert results['criteria_count'] == 7
    totals = {t['team_name']: t for t in results['team_totals']}
    assert totals['Alpha']['total_score'] == 30
    # 10*.25 + 8*.20 + 6*.30 + 4*.15 + 2*.10
    assert totals['Alpha']['weighted_score'] == pytest.approx(6.7)
    assert totals['Beta']['weighted_score'] == pytest.approx(9.0)
    assert totals['Gamma']['total_scores'] == 0


def test_export_csv_by_weighted_score(users, active_event):
    score_event(users, active_event)

    filename, content = export_results_csv(active_event.id, score_mode='weighted')

    lines = content.strip().splitlines()
    assert filename == 'hack-day-results-weighted.csv'
    assert lines[0] == 'Rank,Team Name,Award Type,Presentation Order,Weighted Score,Number of Scores,Judge Count'
    assert lines[1].startswith('1,Beta,Business,2,9.0')
    assert lines[2].startswith('2,Alpha,Technical,1,6.7')
    assert lines[3].startswith('3,Gamma,General,3,0.0')


def test_export_csv_filtered_by_award_type(users, active_event):
    score_event(users, active_event)

    _, content = export_results_csv(active_event.id, award_type_filter='technical')

    lines = content.strip().splitlines()
    assert len(lines) == 2
    assert lines[1].startswith('1,Alpha,Technical')


def test_export_rejects_unknown_mode(users, active_event):
    with pytest.raises(ValidationError):
        export_results_csv(active_event.id, score_mode='median')


def test_results_routes(admin_client, users, active_event):
    score_event(users, active_event)

    body = admin_client.get(f'/api/admin/results?event_id={active_event.id}').get_json()
    assert body['event']['name'] == 'Hack Day'
    assert body['team_totals'][0]['team_name'] == 'Alpha'

    response = admin_client.get(f'/api/admin/results/export?event_id={active_event.id}&score_mode=total')
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    assert 'hack-day-results-total.csv' in response.headers['Content-Disposition']


def test_results_for_missing_event(admin_client):
    assert admin_client.get('/api/admin/results?event_id=999').status_code == 404


def test_export_judge_scores(users, active_event):
    alpha = team_named(active_event, 'Alpha')
    first, second = criteria_of(active_event, 'technical')[:2]
    upsert_score(users['judge'].id, alpha.id, second.id, 7, comment='Clean, readable')
    upsert_score(users['judge'].id, alpha.id, first.id, None)

    filename, content = export_judge_scores_csv(active_event.id)

    lines = content.strip().splitlines()
    assert filename.startswith('judge-scores-detail-hack-day-')
    assert lines[0] == 'Judge Email,Team Name,Team Order,Criterion Name,Score,Comment,Updated At'
    assert lines[1].startswith('judge@example.com,Alpha,1,technical 1,,,')
    assert lines[2].startswith('judge@example.com,Alpha,1,technical 2,7,"Clean, readable",')


def test_export_judge_scores_route(admin_client, active_event):
    response = admin_client.get(f'/api/admin/results/export-judge-scores?event_id={active_event.id}')
    assert response.status_code == 200
    assert response.get_data(as_text=True).startswith('Judge Email,')


def test_score_average_uses_individual_scores(frames):
    alpha = row(compute_standings(*frames), 'Alpha')
    # (8 + 6 + 4) / 3, тогда как среднее сумм судей (14 + 4) / 2 = 9
    assert alpha['score_average'] == 6
    assert alpha['average_score'] == 9


def test_event_results_include_score_average(users, active_event):
    score_event(users, active_event)
    totals = {t['team_name']: t for t in event_results(active_event.id)['team_totals']}
    assert totals['Alpha']['score_average'] == 6
    assert totals['Gamma']['score_average'] == 0
