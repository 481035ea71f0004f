"""
Тесты подсчета баллов: суммы судей, зрительское голосование, итог и рейтинг
"""
import logging

import pytest

from aggregation import (
    judge_subtotals,
    team_judge_score,
    public_vote_summary,
    final_score,
    team_standing,
    rank_standings,
    judge_breakdown,
    find_close_pairs,
    team_number_key,
    ANONYMOUS_JUDGE,
)


def score(judge_id, criterion_id, value, judge_name=None, team_id=1, comment=None):
    return {'team_id': team_id, 'judge_id': judge_id, 'judge_name': judge_name,
            'criterion_id': criterion_id, 'score': value, 'comment': comment, 'updated_at': None}


def vote(session_id, criterion_id, value, team_id=1):
    return {'team_id': team_id, 'session_id': session_id, 'criterion_id': criterion_id, 'score': value}


def standing(team_id, name, team_number, value):
    return {'team_id': team_id, 'name': name, 'team_number': team_number, 'final_score': value}


def test_no_scores_means_zero():
    """Без оценок и голосов все баллы равны нулю"""
    assert team_judge_score([]) == 0
    assert public_vote_summary([]) == {'public_score': 0, 'voter_count': 0, 'vote_count': 0}
    assert final_score(0, 0) == 0


def test_single_judge_subtotal():
    """Один судья: 5 + 3 = 8"""
    rows = [score(1, 10, 5), score(1, 11, 3)]
    assert judge_subtotals(rows) == {1: 8}
    assert team_judge_score(rows) == 8


def test_judge_score_is_mean_of_subtotals():
    """Два судьи с суммами 10 и 20 дают 15, а не среднее по строкам"""
    rows = [score(1, 10, 4), score(1, 11, 6), score(2, 10, 12), score(2, 11, 8)]
    assert team_judge_score(rows) == 15


def test_partial_judge_counts_with_partial_subtotal():
    """Судья, оценивший один критерий из двух, входит со своей неполной суммой"""
    rows = [score(1, 10, 5), score(1, 11, 5), score(2, 10, 4)]
    assert team_judge_score(rows) == 7


def test_public_score_is_flat_mean_over_rows():
    """Один зритель с голосами 6 и 8: среднее 7, один голосующий"""
    summary = public_vote_summary([vote('s1', 10, 6), vote('s1', 11, 8)])
    assert summary['public_score'] == 7
    assert summary['voter_count'] == 1
    assert summary['vote_count'] == 2


def test_public_score_not_grouped_by_session():
    """Зритель с большим числом строк весит больше: среднее по строкам, а не по сессиям"""
    votes = [vote('s1', 10, 10), vote('s1', 11, 10), vote('s1', 10, 10), vote('s2', 10, 2)]
    summary = public_vote_summary(votes)
    assert summary['public_score'] == 8
    assert summary['voter_count'] == 2


def test_final_score_blend():
    """80 от жюри и 60 от зрителей дают 72 + 6 = 78"""
    assert final_score(80, 60) == pytest.approx(78.0)


def test_walk_up_judges_grouped_by_name():
    """Судьи без учетной записи различаются по имени"""
    rows = [
        score(None, 10, 5, judge_name='Гость'),
        score(None, 11, 5, judge_name='Гость'),
        score(None, 10, 2, judge_name='Другой'),
    ]
    assert judge_subtotals(rows) == {'Гость': 10, 'Другой': 2}
    assert team_judge_score(rows) == 6


def test_judge_without_id_and_name_is_anonymous():
    rows = [score(None, 10, 3), score(None, 11, 4)]
    assert judge_subtotals(rows) == {ANONYMOUS_JUDGE: 7}


def test_foreign_criterion_rows_are_skipped(caplog):
    """Строка с критерием чужого трека пропускается с предупреждением"""
    rows = [score(1, 10, 5), score(1, 99, 100)]
    with caplog.at_level(logging.WARNING, logger='aggregation'):
        assert team_judge_score(rows, criterion_ids={10, 11}) == 5
    assert any('99' in r.getMessage() for r in caplog.records)


def test_foreign_criterion_votes_are_skipped():
    votes = [vote('s1', 10, 6), vote('s2', 99, 0)]
    summary = public_vote_summary(votes, criterion_ids={10})
    assert summary['public_score'] == 6
    assert summary['voter_count'] == 1


def test_team_standing_combines_everything():
    team = {'id': 7, 'name': 'Команда', 'team_number': '3', 'track_id': 1, 'room_id': 2}
    rows = [score(1, 10, 40, team_id=7), score(1, 11, 40, team_id=7)]
    votes = [vote('s1', 10, 60, team_id=7)]
    result = team_standing(team, rows, votes, criterion_ids={10, 11})
    assert result['judge_score'] == 80
    assert result['judge_count'] == 1
    assert result['public_score'] == 60
    assert result['final_score'] == pytest.approx(78.0)


def test_team_number_key_orders_numbers_numerically():
    numbers = ['10', '2', 'B-1', '1']
    assert sorted(numbers, key=team_number_key) == ['1', '2', '10', 'B-1']


def test_rank_standings_descending():
    ranked = rank_standings([
        standing(1, 'A', '1', 10),
        standing(2, 'B', '2', 30),
        standing(3, 'C', '3', 20),
    ])
    assert [s['team_id'] for s in ranked] == [2, 3, 1]
    assert [s['rank'] for s in ranked] == [1, 2, 3]


def test_ties_broken_by_team_number_regardless_of_input_order():
    """При равных баллах порядок определяется номером команды"""
    teams = [standing(1, 'Z', '10', 50), standing(2, 'A', '2', 50), standing(3, 'M', '1', 40)]
    first = rank_standings(teams)
    second = rank_standings(list(reversed(teams)))
    assert [s['team_id'] for s in first] == [2, 1, 3]
    assert [s['team_id'] for s in second] == [2, 1, 3]
    assert first[1]['tied_with_previous'] is True
    assert first[2]['tied_with_previous'] is False


def test_unknown_scores_go_last_without_rank():
    ranked = rank_standings([standing(1, 'A', '1', None), standing(2, 'B', '2', 5)])
    assert ranked[0]['team_id'] == 2
    assert ranked[1]['rank'] is None


def test_judge_breakdown_labels_and_subtotals():
    criteria = {10: {'name': 'Идея', 'max_score': 10}, 11: {'name': 'Реализация', 'max_score': 10}}
    rows = [
        score(1, 10, 7, judge_name='Анна', comment='Хорошо'),
        score(1, 11, 8, judge_name='Анна'),
        score(2, 10, 5),
        score(2, 99, 5),
    ]
    breakdown = judge_breakdown(rows, criteria)
    assert [j['judge'] for j in breakdown] == ['Анна', 'Судья #2']
    assert breakdown[0]['subtotal'] == 15
    assert breakdown[0]['comment'] == 'Хорошо'
    assert len(breakdown[1]['scores']) == 1


def test_find_close_pairs():
    ranked = rank_standings([
        standing(1, 'A', '1', 50),
        standing(2, 'B', '2', 48),
        standing(3, 'C', '3', 30),
        standing(4, 'D', '4', 29.5),
    ])
    close = find_close_pairs(ranked, 3)
    assert [s['team_id'] for s in close] == [1, 2, 3, 4]
    assert find_close_pairs(ranked, 1) == [ranked[2], ranked[3]]
