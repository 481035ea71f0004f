from app import create_app
from extensions import db
from models import User, Track, Room, Team, Criterion, JudgeAssignment, Score, PublicVote, QuickSnippet, NowPresenting

# Создаем экземпляр приложения, чтобы получить контекст
app = create_app()

with app.app_context():
    # --- 1. ОЧИСТКА ДАННЫХ ---
    print("Очистка старых данных...")
    # Идем в обратном порядке зависимостей
    db.session.query(NowPresenting).delete()
    db.session.query(QuickSnippet).delete()
    db.session.query(PublicVote).delete()
    db.session.query(Score).delete()
    db.session.query(JudgeAssignment).delete()
    db.session.query(Team).delete()
    db.session.query(Criterion).delete()
    db.session.query(Room).delete()
    db.session.query(Track).delete()
    db.session.query(User).delete()
    db.session.commit()
    print("Очистка завершена.")

    # --- 2. СОЗДАНИЕ ДАННЫХ ---
    print("Добавление тестовых данных...")

    try:
        admin = User(code='000001', full_name='Организатор', role='admin')
        judge1 = User(code='200001', full_name='Анна Смирнова', role='judge')
        judge2 = User(code='200002', full_name='Игорь Петров', role='judge')
        db.session.add_all([admin, judge1, judge2])
        db.session.commit()

        # --- Треки и комнаты ---
        track_ai = Track(name='AI/ML', description='Проекты с машинным обучением')
        track_web = Track(name='Web', description='Веб-сервисы')
        db.session.add_all([track_ai, track_web])
        db.session.commit()

        room_a = Room(name='Аудитория 101', track_id=track_ai.id, passcode='AI101')
        room_b = Room(name='Аудитория 202', track_id=track_web.id, passcode='WEB202')
        db.session.add_all([room_a, room_b])
        db.session.commit()

        # --- Критерии: у каждого трека свои ---
        criteria = [
            Criterion(name='Инновационность', track_id=track_ai.id, max_score=10, display_order=1),
            Criterion(name='Техническая сложность', track_id=track_ai.id, max_score=10, display_order=2),
            Criterion(name='Презентация', track_id=track_ai.id, type='dropdown', max_score=5, display_order=3,
                      options=[{'label': 'Слабо', 'score': 1}, {'label': 'Хорошо', 'score': 3},
                               {'label': 'Отлично', 'score': 5}]),
            Criterion(name='Польза для пользователей', track_id=track_web.id, max_score=10, display_order=1),
            Criterion(name='Качество реализации', track_id=track_web.id, max_score=10, display_order=2),
        ]
        db.session.add_all(criteria)
        db.session.commit()

        # --- Команды ---
        teams = [
            Team(name='Нейросеть и Ко', team_number='1', track_id=track_ai.id, room_id=room_a.id,
                 members=['Маша', 'Дима']),
            Team(name='Градиентный спуск', team_number='2', track_id=track_ai.id, room_id=room_a.id,
                 members=['Олег']),
            Team(name='Фронтендеры', team_number='1', track_id=track_web.id, room_id=room_b.id,
                 members=['Катя', 'Артем', 'Лена']),
        ]
        db.session.add_all(teams)

        # --- Назначения судей ---
        db.session.add_all([
            JudgeAssignment(judge_id=judge1.id, room_id=room_a.id),
            JudgeAssignment(judge_id=judge2.id, room_id=room_a.id),
            JudgeAssignment(judge_id=judge2.id, room_id=room_b.id),
        ])
        db.session.commit()

        # Пример оценки
        db.session.add_all([
            Score(team_id=teams[0].id, judge_id=judge1.id, judge_name=judge1.full_name,
                  criterion_id=criteria[0].id, score=8, comment='Сильная идея'),
            Score(team_id=teams[0].id, judge_id=judge1.id, judge_name=judge1.full_name,
                  criterion_id=criteria[1].id, score=7),
            PublicVote(team_id=teams[0].id, criterion_id=criteria[0].id, score=9, session_id='session_seed_1'),
        ])
        db.session.commit()

        # Заготовки комментариев и выступающая команда
        db.session.add_all([
            QuickSnippet(track_id=track_ai.id, shortcut=';demo', full_text='Хорошее демо, все работает вживую.'),
            QuickSnippet(track_id=track_ai.id, judge_id=judge1.id, shortcut=';ml',
                         full_text='Стоит показать метрики модели на отложенной выборке.'),
            NowPresenting(room_id=room_a.id, team_id=teams[1].id),
        ])
        db.session.commit()

        print("Тестовые данные успешно добавлены!")
    except Exception as e:
        db.session.rollback()
        print(f"Ошибка при добавлении данных: {e}")
        raise
