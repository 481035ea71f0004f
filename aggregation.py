# aggregation.py
# Подсчет итоговых баллов команд. Только чистые функции над списками строк-словарей:
# никаких запросов к БД, все пересчитывается с нуля при каждом обращении.

import logging
from collections import OrderedDict

logger = logging.getLogger(__name__)

# Доли судейской оценки и зрительского голосования в итоговом балле
JUDGE_WEIGHT = 0.9
PUBLIC_WEIGHT = 0.1

ANONYMOUS_JUDGE = 'Anonymous'


def judge_key(row):
    # Судья с учетной записью определяется по judge_id, судья по коду комнаты - по имени.
    # Два разных судьи с одинаковым именем сольются в одного.
    if row.get('judge_id') is not None:
        return row['judge_id']
    return row.get('judge_name') or ANONYMOUS_JUDGE


def _valid_rows(rows, criterion_ids, kind):
    if criterion_ids is None:
        return list(rows)
    allowed = set(criterion_ids)
    valid = []
    for row in rows:
        if row.get('criterion_id') in allowed:
            valid.append(row)
        else:
            logger.warning(
                "Пропущена строка %s команды %s: критерий %s не относится к треку команды",
                kind, row.get('team_id'), row.get('criterion_id'),
            )
    return valid


def judge_subtotals(rows, criterion_ids=None):
    """
    Сумма баллов каждого судьи по команде: {ключ судьи: сумма}.
    Если передан criterion_ids, строки с чужими критериями пропускаются.
    """
    subtotals = OrderedDict()
    for row in _valid_rows(rows, criterion_ids, 'оценки'):
        key = judge_key(row)
        subtotals[key] = subtotals.get(key, 0) + float(row['score'])
    return subtotals


def team_judge_score(rows, criterion_ids=None):
    """
    Среднее по судьям от их сумм (а не среднее по строкам).
    Судья, оценивший часть критериев, входит со своей неполной суммой.
    """
    subtotals = judge_subtotals(rows, criterion_ids)
    if not subtotals:
        return 0
    return sum(subtotals.values()) / len(subtotals)


def public_vote_summary(votes, criterion_ids=None):
    """
    Зрительская оценка - плоское среднее по всем строкам голосов, без группировки
    по сессиям. Число голосующих - число различных session_id.
    """
    votes = _valid_rows(votes, criterion_ids, 'голоса')
    if not votes:
        return {'public_score': 0, 'voter_count': 0, 'vote_count': 0}
    return {
        'public_score': sum(float(v['score']) for v in votes) / len(votes),
        'voter_count': len({v['session_id'] for v in votes}),
        'vote_count': len(votes),
    }


def final_score(judge_score, public_score):
    return judge_score * JUDGE_WEIGHT + public_score * PUBLIC_WEIGHT


def team_standing(team, score_rows, vote_rows, criterion_ids=None):
    """Все производные значения одной команды. final_score - единственный балл для ранжирования."""
    subtotals = judge_subtotals(score_rows, criterion_ids)
    judge_score = sum(subtotals.values()) / len(subtotals) if subtotals else 0
    votes = public_vote_summary(vote_rows, criterion_ids)
    return {
        'team_id': team['id'],
        'name': team['name'],
        'team_number': team.get('team_number'),
        'track_id': team.get('track_id'),
        'room_id': team.get('room_id'),
        'judge_score': judge_score,
        'judge_count': len(subtotals),
        'public_score': votes['public_score'],
        'voter_count': votes['voter_count'],
        'vote_count': votes['vote_count'],
        'final_score': final_score(judge_score, votes['public_score']),
    }


def team_number_key(team_number):
    # Числовые номера сравниваются как числа и идут раньше буквенных
    text = str(team_number or '').strip()
    if text.isdigit():
        return (0, int(text), '')
    return (1, 0, text.lower())


def rank_standings(standings, key='final_score'):
    """
    Сортирует по убыванию key. При равенстве - по номеру команды, затем по названию,
    поэтому порядок не зависит от того, в каком порядке строки вернула БД.
    Команды с неизвестным баллом (None) идут в конец без места.
    """
    known = [s for s in standings if s.get(key) is not None]
    unknown = [s for s in standings if s.get(key) is None]

    def tie_break(s):
        return (team_number_key(s.get('team_number')), s.get('name') or '')

    known.sort(key=tie_break)
    known.sort(key=lambda s: s[key], reverse=True)
    unknown.sort(key=tie_break)

    ranked = []
    previous = None
    for position, standing in enumerate(known, start=1):
        item = dict(standing)
        item['rank'] = position
        item['tied_with_previous'] = previous is not None and previous == standing[key]
        previous = standing[key]
        ranked.append(item)
    for standing in unknown:
        item = dict(standing)
        item['rank'] = None
        item['tied_with_previous'] = False
        ranked.append(item)
    return ranked


def _judge_label(row):
    if row.get('judge_name'):
        return row['judge_name']
    if row.get('judge_id') is not None:
        return f"Судья #{row['judge_id']}"
    return ANONYMOUS_JUDGE


def judge_breakdown(rows, criteria_by_id):
    """Оценки команды, разложенные по судьям (для карточки команды)."""
    judges = OrderedDict()
    for row in rows:
        criterion = criteria_by_id.get(row['criterion_id'])
        if criterion is None:
            logger.warning("Пропущена оценка команды %s: неизвестный критерий %s",
                           row.get('team_id'), row['criterion_id'])
            continue
        key = judge_key(row)
        if key not in judges:
            judges[key] = {
                'judge': _judge_label(row),
                'judge_id': row.get('judge_id'),
                'judge_name': row.get('judge_name'),
                'subtotal': 0,
                'comment': None,
                'scores': [],
            }
        entry = judges[key]
        entry['subtotal'] += float(row['score'])
        if row.get('comment') and not entry['comment']:
            entry['comment'] = row['comment']
        entry['scores'].append({
            'criterion_id': row['criterion_id'],
            'criterion': criterion['name'],
            'score': float(row['score']),
            'max_score': criterion['max_score'],
        })
    return list(judges.values())


def find_close_pairs(ranked, max_difference, key='final_score'):
    """Соседние по рейтингу команды, чьи баллы отличаются не больше чем на max_difference."""
    close = []
    seen = set()
    known = [s for s in ranked if s.get(key) is not None]
    for first, second in zip(known, known[1:]):
        if abs(first[key] - second[key]) <= max_difference:
            for standing in (first, second):
                if standing['team_id'] not in seen:
                    seen.add(standing['team_id'])
                    close.append(standing)
    return close
