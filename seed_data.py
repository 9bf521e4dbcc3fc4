import logging

from extensions import db
from models import User, Event, Criterion, Team, EventJudge, Score, TeamMember, Invitation

logger = logging.getLogger(__name__)


def clear_data():
    # Идем в обратном порядке зависимостей
    db.session.query(Score).delete()
    db.session.query(TeamMember).delete()
    db.session.query(EventJudge).delete()
    db.session.query(Criterion).delete()
    db.session.query(Team).delete()
    db.session.query(Event).delete()
    db.session.query(Invitation).delete()
    db.session.query(User).delete()
    db.session.commit()


def seed_demo_data():
    """Наполняет базу демонстрационным хакатоном. Возвращает созданное событие."""
    logger.info('Clearing existing data')
    clear_data()

    try:
        # --- Пользователи ---
        admin = User(email='admin@example.com', code='000001', role='admin')
        judge1 = User(email='judge1@example.com', code='200001', role='judge')
        judge2 = User(email='judge2@example.com', code='200002', role='judge')
        participant = User(email='participant@example.com', code='100001', role='participant')
        db.session.add_all([admin, judge1, judge2, participant])
        db.session.commit()

        # --- Событие ---
        event = Event(name='Spring Hackathon', description='Demo event', status='active', max_team_size=4)
        db.session.add(event)
        db.session.commit()

        # --- Критерии: веса каждой категории в сумме дают 100% ---
        technical = [('Code Quality', 25), ('Architecture', 20), ('Innovation', 30),
                     ('Completeness', 15), ('Demo', 10)]
        business = [('Market Fit', 40), ('Business Model', 35), ('Pitch', 25)]
        order = 1
        for category, items in (('technical', technical), ('business', business)):
            for name, weight in items:
                db.session.add(Criterion(event_id=event.id, name=name, min_score=1, max_score=10,
                                         display_order=order, weight=weight, category=category))
                order += 1

        # --- Команды ---
        teams = [
            Team(event_id=event.id, name='Byte Riders', presentation_order=1, award_type='technical'),
            Team(event_id=event.id, name='Market Makers', presentation_order=2, award_type='business'),
            Team(event_id=event.id, name='Full Stack', presentation_order=3, award_type='both'),
        ]
        db.session.add_all(teams)

        # --- Назначение судей ---
        db.session.add_all([
            EventJudge(event_id=event.id, judge_id=judge1.id),
            EventJudge(event_id=event.id, judge_id=judge2.id),
        ])
        db.session.commit()
        logger.info('Demo data created for event %s', event.id)
        return event
    except Exception:
        db.session.rollback()
        logger.exception('Failed to create demo data')
        raise
