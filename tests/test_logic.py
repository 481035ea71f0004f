"""
Тесты сервисов: лидерборд, финализация трека, победители и аналитика
"""
import pytest

from errors import AggregateUnavailable, RoomLocked, StoreUnavailable
from extensions import db
from logic import (
    compute_leaderboard,
    team_detail,
    finalize_track,
    winners_report,
    find_close_teams,
    judging_progress,
    voting_analytics,
    room_activity,
    judge_history,
    now_presenting,
    event_overview,
)
from models import Room, Team, Score
from store import ScoreStore

from conftest import judge_session, walk_up_session, voter


@pytest.fixture
def scored(store, hackathon):
    """Команда 1: судьи 15 и 10, зрители 5. Команда 2: один судья 18."""
    h = hackathon
    store.replace_judge_scores(judge_session(h.judge1, h.room), h.team1.id, {h.idea.id: 7, h.tech.id: 8})
    store.replace_judge_scores(judge_session(h.judge2, h.room), h.team1.id, {h.idea.id: 5, h.tech.id: 5})
    store.replace_judge_scores(judge_session(h.judge1, h.room), h.team2.id, {h.idea.id: 9, h.tech.id: 9})
    store.add_public_votes(voter('s1'), h.team1.id, {h.idea.id: 4, h.tech.id: 6})
    return h


class BrokenStore(ScoreStore):
    def fetch_scores_for_teams(self, team_ids):
        raise StoreUnavailable('Не удалось загрузить оценки. Попробуйте позже.')


def test_leaderboard_ranks_by_final_score(store, scored):
    board = compute_leaderboard(store, track_id=scored.track.id)
    assert [t['team_id'] for t in board] == [scored.team2.id, scored.team1.id]
    assert board[0]['judge_score'] == 18
    assert board[0]['final_score'] == pytest.approx(16.2)
    assert board[1]['judge_score'] == 12.5
    assert board[1]['judge_count'] == 2
    assert board[1]['public_score'] == 5
    assert board[1]['final_score'] == pytest.approx(12.5 * 0.9 + 0.5)


def test_leaderboard_by_room(store, scored):
    assert compute_leaderboard(store, room_id=scored.other_room.id) == []
    assert len(compute_leaderboard(store, room_id=scored.room.id)) == 2


def test_leaderboard_ignores_foreign_criterion_rows(store, scored):
    # Строка, записанная в обход проверки, с критерием другого трека
    db.session.add(Score(team_id=scored.team2.id, judge_id=scored.judge2.id, judge_name='Игорь Петров',
                         criterion_id=scored.foreign.id, score=100))
    db.session.commit()
    board = compute_leaderboard(store, track_id=scored.track.id)
    assert board[0]['judge_score'] == 18
    assert board[0]['judge_count'] == 1


def test_leaderboard_unavailable_instead_of_zero(app, scored):
    with pytest.raises(AggregateUnavailable):
        compute_leaderboard(BrokenStore(), track_id=scored.track.id)


def test_team_detail(store, scored):
    detail = team_detail(store, scored.team1.id)
    assert detail['team']['name'] == 'Нейросеть и Ко'
    assert [j['subtotal'] for j in detail['judges']] == [15, 10]
    assert detail['public']['voter_count'] == 1
    assert detail['standing']['judge_score'] == 12.5


def test_finalize_writes_totals_and_locks_rooms(store, scored):
    ranked = finalize_track(store, scored.track.id)
    assert [t['team_id'] for t in ranked] == [scored.team2.id, scored.team1.id]

    team2 = db.session.get(Team, scored.team2.id)
    assert team2.total_score == pytest.approx(16.2)
    assert db.session.get(Room, scored.room.id).is_locked is True
    # Комната другого трека не затронута
    assert db.session.get(Room, scored.other_room.id).is_locked is False


def test_finalize_is_idempotent(store, scored):
    finalize_track(store, scored.track.id)
    first = {t['id']: t['total_score'] for t in store.fetch_teams(track_id=scored.track.id)}
    finalize_track(store, scored.track.id)
    second = {t['id']: t['total_score'] for t in store.fetch_teams(track_id=scored.track.id)}
    assert first == second


def test_no_scores_after_finalize(store, scored):
    finalize_track(store, scored.track.id)
    with pytest.raises(RoomLocked):
        store.replace_judge_scores(judge_session(scored.judge2, scored.room), scored.team2.id,
                                   {scored.idea.id: 10, scored.tech.id: 10})


def test_winners_report_uses_saved_totals(store, scored):
    assert winners_report(store, scored.track.id) == []
    finalize_track(store, scored.track.id)
    winners = winners_report(store, scored.track.id, limit=1)
    assert len(winners) == 1
    assert winners[0]['team_id'] == scored.team2.id
    assert winners[0]['rank'] == 1


def test_find_close_teams(store, scored):
    close = find_close_teams(store, scored.track.id, max_difference=5)
    assert {t['team_id'] for t in close} == {scored.team1.id, scored.team2.id}
    assert find_close_teams(store, scored.track.id, max_difference=1) == []


def test_judging_progress(store, scored):
    progress = judging_progress(store, scored.room.id)
    assert [p['team_number'] for p in progress] == ['1', '2']
    assert [p['scored_count'] for p in progress] == [2, 1]
    assert all(p['total_judges'] == 2 for p in progress)


def test_voting_analytics(store, scored):
    store.add_public_votes(voter('s2'), scored.team1.id, {scored.idea.id: 10})
    store.add_public_votes(voter('s1'), scored.team2.id, {scored.idea.id: 2})
    stats = voting_analytics(store, track_id=scored.track.id)
    assert stats['total_votes'] == 4
    assert stats['unique_voters'] == 2
    assert stats['most_voted_team']['team_id'] == scored.team1.id
    assert stats['average_votes_per_team'] == 1.5
    assert len(stats['recent_votes']) == 4


def test_room_activity(store, scored):
    activity = {r['room_id']: r for r in room_activity(store)}
    assert activity[scored.room.id]['team_count'] == 2
    assert activity[scored.room.id]['top_team'] == 'Градиентный спуск'
    assert activity[scored.other_room.id]['top_team'] is None


def test_judge_history(store, scored):
    history = judge_history(store, judge_session(scored.judge1, scored.room))
    assert {h['team_id']: h['subtotal'] for h in history} == {scored.team1.id: 15, scored.team2.id: 18}
    assert judge_history(store, walk_up_session('Никто', scored.room)) == []


def test_judge_history_ignores_foreign_criterion_rows(store, scored):
    db.session.add(Score(team_id=scored.team2.id, judge_id=scored.judge1.id, judge_name='Анна Смирнова',
                         criterion_id=scored.foreign.id, score=100))
    db.session.commit()
    history = judge_history(store, judge_session(scored.judge1, scored.room))
    assert {h['team_id']: h['subtotal'] for h in history} == {scored.team1.id: 15, scored.team2.id: 18}


def test_now_presenting(store, hackathon):
    h = hackathon
    assert now_presenting(store, h.room.id) is None
    store.set_now_presenting(h.room.id, h.team2.id)
    current = now_presenting(store, h.room.id)
    assert current['team_name'] == 'Градиентный спуск'
    assert current['team_number'] == '2'
    assert current['started_at'] is not None
    # После запечатывания комнаты никто не выступает
    store.set_room_lock(h.room.id, True)
    assert now_presenting(store, h.room.id) is None


def test_event_overview(store, hackathon):
    finalize_track(store, hackathon.track.id)
    overview = event_overview(store)
    assert overview['total_teams'] == 2
    assert overview['total_tracks'] == 2
    assert overview['total_rooms'] == 2
    assert overview['locked_rooms'] == 1
    assert overview['total_judges'] == 2
    assert overview['assigned_judges'] == 2
    assert overview['unassigned_judges'] == 0
