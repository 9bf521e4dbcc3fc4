"""
Итоги события: суммы, средние и взвешенные баллы команд, выгрузка в CSV.

Взвешенный балл считается для каждого судьи отдельно:
    sum(score * weight / сумма весов критериев, подходящих команде)
и затем усредняется по судьям. Учитываются только критерии той категории,
на награду которой претендует команда ('both' - все категории).

average_score - среднее сумм судей (по нему ранжирует выгрузка),
score_average - среднее по отдельным оценкам, как на панели итогов.
"""

import re
from io import StringIO

import pandas as pd

from errors import NotFoundError, ValidationError
from extensions import db, utcnow
from models import Criterion, Event, Score, Team, User

TEAM_COLUMNS = ['team_id', 'team_name', 'presentation_order', 'award_type']
CRITERION_COLUMNS = ['criterion_id', 'criterion_name', 'category', 'weight']
SCORE_COLUMNS = ['team_id', 'judge_id', 'criterion_id', 'score']

SCORE_MODES = {
    'total': ('total_score', 'Total Score'),
    'average': ('average_score', 'Average Score'),
    'weighted': ('weighted_score', 'Weighted Score'),
}
AWARD_FILTERS = ('all', 'technical', 'business', 'both')
AWARD_LABELS = {'technical': 'Technical', 'business': 'Business', 'both': 'General'}


def _safe_name(name):
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-') or 'event'


def _applies(award_type, category):
    return award_type == 'both' or award_type == category


def _team_weights(teams, criteria):
    weights = {}
    for team in teams.itertuples(index=False):
        total = sum(
            c.weight for c in criteria.itertuples(index=False)
            if _applies(team.award_type, c.category)
        )
        # Без весов делим на 100, как если бы веса не заданы
        weights[team.team_id] = float(total) if total > 0 else 100.0
    return weights


def _applicable_scores(teams, criteria, scores):
    merged = scores.dropna(subset=['score']).merge(
        criteria, on='criterion_id'
    ).merge(teams[['team_id', 'award_type']], on='team_id')
    mask = (merged['award_type'] == 'both') | (merged['award_type'] == merged['category'])
    return merged.loc[mask].copy()


def compute_standings(teams, criteria, scores):
    """
    teams, criteria, scores - DataFrame со столбцами TEAM_COLUMNS,
    CRITERION_COLUMNS и SCORE_COLUMNS. Возвращает DataFrame с итогами по
    каждой команде, отсортированный по сумме баллов.
    """
    merged = _applicable_scores(teams, criteria, scores)
    team_weight = _team_weights(teams, criteria)
    merged['weighted'] = (
        merged['score'].astype(float) * merged['weight'].astype(float)
        / merged['team_id'].map(team_weight).astype(float)
    )

    per_judge = merged.groupby(['team_id', 'judge_id'], as_index=False).agg(
        judge_total=('score', 'sum'),
        judge_weighted=('weighted', 'sum'),
        criteria_scored=('score', 'count'),
    )
    per_team = per_judge.groupby('team_id', as_index=False).agg(
        total_score=('judge_total', 'sum'),
        average_score=('judge_total', 'mean'),
        weighted_score=('judge_weighted', 'mean'),
        total_scores=('criteria_scored', 'sum'),
        judge_count=('judge_id', 'nunique'),
    )

    # Среднее по отдельным оценкам, а не по суммам судей
    per_score = merged.groupby('team_id', as_index=False).agg(score_average=('score', 'mean'))
    per_team = per_team.merge(per_score, on='team_id', how='left')

    standings = teams.merge(per_team, on='team_id', how='left')
    for column in ('total_score', 'average_score', 'weighted_score', 'score_average'):
        standings[column] = standings[column].fillna(0).astype(float).round(2)
    for column in ('total_scores', 'judge_count'):
        standings[column] = standings[column].fillna(0).astype(int)

    return standings.sort_values(
        by=['total_score', 'presentation_order'],
        ascending=[False, True],
        kind='mergesort',
    ).reset_index(drop=True)


def compute_criterion_averages(teams, criteria, scores):
    merged = _applicable_scores(teams, criteria, scores)
    averages = merged.groupby(['team_id', 'criterion_id'], as_index=False).agg(
        criterion_name=('criterion_name', 'first'),
        average_score=('score', 'mean'),
        judge_count=('score', 'count'),
    )
    averages['average_score'] = averages['average_score'].astype(float).round(2)
    return averages


def load_frames(event_id):
    teams = Team.query.filter_by(event_id=event_id).order_by(Team.presentation_order).all()
    criteria = Criterion.query.filter_by(event_id=event_id).order_by(Criterion.display_order).all()
    scores = db.session.query(
        Score.team_id, Score.judge_id, Score.criterion_id, Score.score
    ).filter(Score.event_id == event_id).all()

    teams_df = pd.DataFrame(
        [(t.id, t.name, t.presentation_order, t.award_type) for t in teams],
        columns=TEAM_COLUMNS,
    ).astype({'team_id': 'int64', 'presentation_order': 'int64'})
    criteria_df = pd.DataFrame(
        [(c.id, c.name, c.category, c.weight) for c in criteria],
        columns=CRITERION_COLUMNS,
    ).astype({'criterion_id': 'int64', 'weight': 'int64'})
    # NULL-оценки становятся NaN и отбрасываются при подсчете
    scores_df = pd.DataFrame(
        [tuple(s) for s in scores], columns=SCORE_COLUMNS
    ).astype({'team_id': 'int64', 'judge_id': 'int64', 'criterion_id': 'int64', 'score': 'float64'})
    return teams_df, criteria_df, scores_df


def event_results(event_id):
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFoundError('Event not found')

    teams_df, criteria_df, scores_df = load_frames(event_id)
    standings = compute_standings(teams_df, criteria_df, scores_df)
    averages = compute_criterion_averages(teams_df, criteria_df, scores_df)
    return {
        'event': event.to_dict(),
        'criteria_count': len(criteria_df),
        'team_totals': standings.to_dict(orient='records'),
        'criteria_averages': averages.to_dict(orient='records'),
    }


def export_results_csv(event_id, score_mode='total', award_type_filter='all'):
    """Возвращает пару (имя файла, содержимое CSV)."""
    if score_mode not in SCORE_MODES:
        raise ValidationError(f'Score mode must be one of: {", ".join(SCORE_MODES)}')
    if award_type_filter not in AWARD_FILTERS:
        raise ValidationError(f'Award type filter must be one of: {", ".join(AWARD_FILTERS)}')

    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFoundError('Event not found')

    column, title = SCORE_MODES[score_mode]
    standings = compute_standings(*load_frames(event_id))
    if award_type_filter != 'all':
        standings = standings[standings['award_type'] == award_type_filter]
    standings = standings.sort_values(
        by=[column, 'presentation_order'], ascending=[False, True], kind='mergesort'
    )

    export = pd.DataFrame({
        'Rank': range(1, len(standings) + 1),
        'Team Name': standings['team_name'].tolist(),
        'Award Type': standings['award_type'].map(AWARD_LABELS).tolist(),
        'Presentation Order': standings['presentation_order'].tolist(),
        title: standings[column].tolist(),
        'Number of Scores': standings['total_scores'].tolist(),
        'Judge Count': standings['judge_count'].tolist(),
    })

    buf = StringIO()
    export.to_csv(buf, index=False)

    filename = f'{_safe_name(event.name)}-results-{score_mode}.csv'
    return filename, buf.getvalue()


JUDGE_SCORE_COLUMNS = ['Judge Email', 'Team Name', 'Team Order', 'Criterion Name', 'Score', 'Comment', 'Updated At']


def export_judge_scores_csv(event_id):
    """Построчная выгрузка всех оценок события: судья, команда, критерий."""
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFoundError('Event not found')

    rows = db.session.query(
        User.email, Team.name, Team.presentation_order, Criterion.name,
        Score.score, Score.comment, Score.updated_at,
    ).join(Team, Team.id == Score.team_id).join(
        Criterion, Criterion.id == Score.criterion_id
    ).join(User, User.id == Score.judge_id).filter(
        Team.event_id == event_id
    ).order_by(User.email, Team.presentation_order, Criterion.display_order).all()

    export = pd.DataFrame([tuple(r) for r in rows], columns=JUDGE_SCORE_COLUMNS)
    export['Score'] = export['Score'].astype('Int64')
    export['Comment'] = export['Comment'].fillna('')
    export['Updated At'] = export['Updated At'].map(lambda value: value.isoformat() if value else '')

    buf = StringIO()
    export.to_csv(buf, index=False)

    filename = f'judge-scores-detail-{_safe_name(event.name)}-{utcnow().date().isoformat()}.csv'
    return filename, buf.getvalue()
