import math

import pytest

from geoguess.services.rooms.scoring import (
    elapsed_seconds,
    haversine_km,
    score_for_distance,
    score_results,
    team_ranking,
)

TOKYO = {'lat': 35.6762, 'lng': 139.6503}
OSAKA = {'lat': 34.6937, 'lng': 135.5023}


def _result(pid, team, guess=None):
    return {'id': pid, 'name': pid.upper(), 'team': team, 'lastGuess': guess, 'excluded': guess is None}


def test_haversine_same_point_is_zero():
    assert haversine_km(10.0, 20.0, 10.0, 20.0) == 0


def test_haversine_tokyo_osaka():
    distance = haversine_km(TOKYO['lat'], TOKYO['lng'], OSAKA['lat'], OSAKA['lng'])
    assert 390 < distance < 405


def test_haversine_antipodes_is_half_circumference():
    assert haversine_km(0, 0, 0, 180) == pytest.approx(math.pi * 6371.0)


def test_score_curve():
    assert score_for_distance(0) == 5000
    assert score_for_distance(1500) == round(5000 / math.e)
    assert score_for_distance(100000) == 0
    # clamped to the maximum
    assert score_for_distance(-10) == 5000


def test_elapsed_seconds():
    assert elapsed_seconds(3500, 1000) == 2.5
    assert elapsed_seconds(500, 1000) == 0
    assert elapsed_seconds(None, 1000) == 0
    assert elapsed_seconds(1000, None) == 0


def test_score_results_marks_missing_guesses():
    results = [
        _result('a', 'red', {'lat': OSAKA['lat'], 'lng': OSAKA['lng'], 'time': 4000}),
        _result('b', 'blue'),
    ]
    scored = score_results(results, OSAKA, started_at=1000)
    assert scored[0]['distanceKm'] == 0
    assert scored[0]['score'] == 5000
    assert scored[0]['elapsedSec'] == 3
    assert scored[1]['distanceKm'] is None
    assert scored[1]['score'] == 0
    # inputs are not mutated
    assert 'score' not in results[0]


def test_team_ranking_uses_best_guess_per_team():
    results = [
        _result('a', 'red', {'lat': 0, 'lng': 10}),
        _result('b', 'red', {'lat': 0, 'lng': 2}),
        _result('c', 'blue', {'lat': 0, 'lng': 1}),
        _result('d', 'blue'),
    ]
    ranking = team_ranking(results, {'lat': 0, 'lng': 0})
    assert [entry['team'] for entry in ranking] == ['blue', 'red']
    assert ranking[0]['playerId'] == 'c'
    assert ranking[1]['playerId'] == 'b'
    assert ranking[0]['distanceKm'] < ranking[1]['distanceKm']


def test_team_ranking_omits_teams_without_guesses():
    results = [_result('a', 'red', {'lat': 1, 'lng': 1}), _result('b', 'blue')]
    ranking = team_ranking(results, {'lat': 0, 'lng': 0})
    assert [entry['team'] for entry in ranking] == ['red']
    assert team_ranking([_result('b', 'blue')], {'lat': 0, 'lng': 0}) == []
