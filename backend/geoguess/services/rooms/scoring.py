import math
from typing import Optional

EARTH_RADIUS_KM = 6371.0
MAX_SCORE = 5000
SCORE_FALLOFF_KM = 1500.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def score_for_distance(distance_km: float) -> int:
    """5000 for a perfect guess, decaying exponentially with distance."""
    score = MAX_SCORE * math.exp(-distance_km / SCORE_FALLOFF_KM)
    return round(max(0, min(MAX_SCORE, score)))


def elapsed_seconds(guess_time, started_at) -> float:
    numbers = all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (guess_time, started_at))
    if not numbers or not guess_time or not started_at:
        return 0.0
    try:
        elapsed = (guess_time - started_at) / 1000.0
    except OverflowError:
        return 0.0
    return max(0.0, elapsed) if math.isfinite(elapsed) else 0.0


def _guess_distance(result: dict, spawn: dict) -> Optional[float]:
    guess = result.get('lastGuess')
    if not guess or guess.get('lat') is None or guess.get('lng') is None:
        return None
    return haversine_km(spawn['lat'], spawn['lng'], guess['lat'], guess['lng'])


def score_results(results, spawn: dict, started_at=None):
    """Return copies of round results with distanceKm, score and elapsedSec added.

    Players without a guess get a None distance and zero score.
    """
    scored = []
    for result in results:
        entry = dict(result)
        distance = _guess_distance(result, spawn)
        if distance is None:
            entry.update({'distanceKm': None, 'score': 0, 'elapsedSec': None})
        else:
            entry.update({
                'distanceKm': distance,
                'score': score_for_distance(distance),
                'elapsedSec': elapsed_seconds(result['lastGuess'].get('time'), started_at),
            })
        scored.append(entry)
    return scored


def team_ranking(results, spawn: dict):
    """Best (closest) guess per team, closest team first.

    Teams with no guessing member are left out.
    """
    best = {}
    for result in results:
        distance = _guess_distance(result, spawn)
        if distance is None:
            continue
        team = result.get('team')
        if team not in best or distance < best[team]['distanceKm']:
            best[team] = {
                'team': team,
                'distanceKm': distance,
                'playerId': result.get('id'),
                'player': result.get('name'),
            }
    return sorted(best.values(), key=lambda entry: entry['distanceKm'])
