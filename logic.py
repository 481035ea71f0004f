# logic.py
# Сервисы над хранилищем: лидерборды, карточка команды, финализация трека и аналитика.
# Каждый вызов заново читает исходные строки и пересчитывает все через aggregation.py.

import logging
from collections import defaultdict
from datetime import datetime

from errors import StoreUnavailable, AggregateUnavailable
from aggregation import (
    team_standing, rank_standings, judge_breakdown, public_vote_summary,
    judge_subtotals, judge_key, find_close_pairs, team_number_key,
)

logger = logging.getLogger(__name__)


def _criterion_ids_by_track(store, track_ids):
    return {track_id: {c['id'] for c in store.fetch_criteria(track_id)} for track_id in track_ids}


def compute_leaderboard(store, track_id=None, room_id=None):
    """
    Полный пересчет рейтинга команд трека/комнаты. Если исходные данные получить не удалось,
    бросает AggregateUnavailable: неполные данные не превращаются в нулевые баллы.
    """
    try:
        teams = store.fetch_teams(track_id=track_id, room_id=room_id)
        team_ids = [t['id'] for t in teams]
        criteria = _criterion_ids_by_track(store, {t['track_id'] for t in teams})
        scores = store.fetch_scores_for_teams(team_ids)
        votes = store.fetch_votes_for_teams(team_ids)
    except StoreUnavailable as e:
        raise AggregateUnavailable('Рейтинг временно недоступен: не все данные загружены.') from e

    standings = [
        team_standing(t, scores.get(t['id'], []), votes.get(t['id'], []), criteria[t['track_id']])
        for t in teams
    ]
    return rank_standings(standings)


def team_detail(store, team_id):
    team = store.get_team(team_id)
    try:
        criteria = store.fetch_criteria(team['track_id'])
        scores = store.fetch_scores(team_id)
        votes = store.fetch_votes(team_id)
    except StoreUnavailable as e:
        raise AggregateUnavailable('Оценки команды временно недоступны.') from e

    criterion_ids = {c['id'] for c in criteria}
    standing = team_standing(team, scores, votes, criterion_ids)
    criteria_by_id = {c['id']: c for c in criteria}
    return {
        'team': team,
        'standing': standing,
        'judges': judge_breakdown(scores, criteria_by_id),
        'public': public_vote_summary(votes, criterion_ids),
    }


def finalize_track(store, track_id):
    """
    Финализация: пересчитывает итог каждой команды трека из исходных оценок,
    записывает его в Team.total_score и запечатывает все комнаты трека.
    Повторный вызов при тех же данных записывает те же значения.
    """
    ranked = compute_leaderboard(store, track_id=track_id)
    for standing in ranked:
        store.write_team_total_score(standing['team_id'], standing['final_score'], commit=False)
    locked = store.lock_rooms_for_track(track_id, commit=False)
    store.commit('итоги трека')
    logger.info("Трек %s финализирован: %d команд, %d комнат запечатано", track_id, len(ranked), locked)
    return ranked


def winners_report(store, track_id, limit=10):
    """Победители по сохраненному при финализации total_score."""
    teams = [t for t in store.fetch_teams(track_id=track_id) if t['total_score'] is not None]
    ranked = rank_standings([
        {'team_id': t['id'], 'name': t['name'], 'team_number': t['team_number'], 'total_score': t['total_score']}
        for t in teams
    ], key='total_score')
    return ranked[:limit]


def find_close_teams(store, track_id, max_difference=5, top=10):
    ranked = compute_leaderboard(store, track_id=track_id)[:top]
    return find_close_pairs(ranked, max_difference)


def judging_progress(store, room_id):
    """Сколько судей уже оценили каждую команду комнаты из числа назначенных."""
    teams = store.fetch_teams(room_id=room_id)
    total_judges = store.count_assigned_judges(room_id)
    scores = store.fetch_scores_for_teams([t['id'] for t in teams])
    progress = []
    for team in teams:
        judges = {judge_key(row) for row in scores.get(team['id'], [])}
        progress.append({
            'team_id': team['id'],
            'name': team['name'],
            'team_number': team['team_number'],
            'scored_count': len(judges),
            'total_judges': total_judges,
        })
    progress.sort(key=lambda p: team_number_key(p['team_number']))
    return progress


def voting_analytics(store, track_id=None):
    teams = store.fetch_teams(track_id=track_id)
    team_ids = [t['id'] for t in teams]
    votes = store.fetch_votes_for_teams(team_ids)

    per_team = []
    all_sessions = set()
    total_votes = 0
    for team in teams:
        team_votes = votes.get(team['id'], [])
        summary = public_vote_summary(team_votes)
        all_sessions.update(v['session_id'] for v in team_votes)
        total_votes += summary['vote_count']
        per_team.append({
            'team_id': team['id'],
            'name': team['name'],
            'team_number': team['team_number'],
            'vote_count': summary['voter_count'],
            'vote_rows': summary['vote_count'],
            'average_score': summary['public_score'],
        })

    per_team.sort(key=lambda t: t['vote_count'], reverse=True)
    voted = [t for t in per_team if t['vote_count'] > 0]
    return {
        'total_votes': total_votes,
        'unique_voters': len(all_sessions),
        'average_votes_per_team': (sum(t['vote_count'] for t in per_team) / len(per_team)) if per_team else 0,
        'most_voted_team': voted[0] if voted else None,
        'teams': per_team,
        'recent_votes': store.fetch_recent_votes(team_ids),
    }


def room_activity(store, track_id=None):
    ranked = compute_leaderboard(store, track_id=track_id)
    by_room = defaultdict(list)
    for standing in ranked:
        by_room[standing['room_id']].append(standing)

    activity = []
    for room in store.fetch_rooms(track_id=track_id):
        room_teams = by_room.get(room['id'], [])
        activity.append({
            'room_id': room['id'],
            'room_name': room['name'],
            'is_locked': room['is_locked'],
            'team_count': len(room_teams),
            'avg_score': (sum(t['final_score'] for t in room_teams) / len(room_teams)) if room_teams else 0,
            # ranked уже отсортирован, первая команда комнаты - лучшая
            'top_team': room_teams[0]['name'] if room_teams else None,
        })
    return activity


def judge_history(store, judge_session):
    rows = store.fetch_judge_scores(judge_session)
    by_team = defaultdict(list)
    for row in rows:
        by_team[row['team_id']].append(row)

    history = []
    criteria = {}
    for team_id, team_rows in by_team.items():
        team = store.get_team(team_id)
        if team['track_id'] not in criteria:
            criteria.update(_criterion_ids_by_track(store, {team['track_id']}))
        history.append({
            'team_id': team_id,
            'name': team['name'],
            'team_number': team['team_number'],
            'subtotal': sum(judge_subtotals(team_rows, criteria[team['track_id']]).values()),
            'comment': next((r['comment'] for r in team_rows if r['comment']), None),
            'updated_at': max((r['updated_at'] for r in team_rows if r['updated_at']), default=None),
        })
    history.sort(key=lambda h: h['updated_at'] or datetime.min, reverse=True)
    return history


def now_presenting(store, room_id):
    """Команда, выступающая в комнате сейчас. В запечатанной комнате никто не выступает."""
    room = store.get_room(room_id)
    if room['is_locked']:
        return None
    current = store.fetch_now_presenting(room_id)
    if current is None:
        return None
    team = store.get_team(current['team_id'])
    return {
        'team_id': team['id'],
        'team_name': team['name'],
        'team_number': team['team_number'],
        'started_at': current['started_at'],
    }


def event_overview(store):
    overview = store.fetch_overview()
    overview['unassigned_judges'] = max(overview['total_judges'] - overview['assigned_judges'], 0)
    return overview
