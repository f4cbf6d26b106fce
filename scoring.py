"""Match scoring: display-score normalization and competency ranking.

Raw scores come precomputed from the mapping tables; everything here is a
pure function over rows that were already fetched.

  - normalize(): min-max rescale a sibling group into [floor, ceiling] percent
  - competency_relevance(): weighted average of the matched top-3 slots
  - rank_by_competencies(): score, filter and order mapping rows
"""

import math

COMPETENCY_FLOOR_PERCENT = 10
MAJOR_FLOOR_PERCENT = 5
CEILING_PERCENT = 100

# Slot 1 carries the most weight
SLOT_WEIGHTS = (3, 2, 1)


class EmptyInputError(ValueError):
    """normalize() was called with no raw scores."""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def normalize(raw_scores, floor_percent: int,
              ceiling_percent: int = CEILING_PERCENT) -> list[int]:
    """Rescale a sibling group of raw scores to display percentages.

    The weakest score lands on ``floor_percent`` and the strongest on
    ``ceiling_percent``; output[i] corresponds to raw_scores[i]. When every
    score is equal (or there is only one) they all display as the ceiling.
    """
    scores = [float(s) for s in raw_scores]
    if not scores:
        raise EmptyInputError('normalize() needs at least one raw score')

    min_s = min(scores)
    max_s = max(scores)
    if max_s <= min_s:
        return [ceiling_percent] * len(scores)

    span = ceiling_percent - floor_percent
    display = []
    for s in scores:
        value = round_half_up((s - min_s) / (max_s - min_s) * span + floor_percent)
        display.append(min(ceiling_percent, value))
    return display


def to_number(value, default: float = 0.0) -> float:
    """Coerce a stored score (str, Decimal, None) to float."""
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return number


def cap_percent(raw) -> int:
    """Cap a raw score at 100 and round it for display."""
    return round_half_up(min(to_number(raw), CEILING_PERCENT))


# ---------------------------------------------------------------------------
# Competency ranking
# ---------------------------------------------------------------------------

def mapping_slots(row: dict) -> list[tuple]:
    """Return the [(competency, raw score)] top-3 slots of a mapping row."""
    return [
        (row.get(f'competency_{i}'), to_number(row.get(f'competency_{i}_score')))
        for i in (1, 2, 3)
    ]


def competency_relevance(selected, slots):
    """Weighted average of slot scores for the selected competencies.

    Returns None when no selected competency appears in the slots.
    """
    names = [name for name, _ in slots]
    numerator = 0.0
    denominator = 0
    for competency in selected:
        if competency not in names:
            continue
        index = names.index(competency)
        weight = SLOT_WEIGHTS[index]
        numerator += weight * slots[index][1]
        denominator += weight

    if denominator == 0:
        return None
    return numerator / denominator


def rank_by_competencies(selected, rows, limit=None) -> list[dict]:
    """Turn job_nace_mappings rows into ranked occupation records.

    Rows sharing no competency with the selection are dropped. Ties keep
    the order the rows were fetched in. A ``limit`` of None or <= 0 keeps
    every row.
    """
    selected = sorted(selected)
    ranked = []
    for row in rows:
        relevance = competency_relevance(selected, mapping_slots(row))
        if relevance is None:
            continue
        record = occupation_record(row)
        record['match_score'] = cap_percent(relevance)
        ranked.append(record)

    ranked.sort(key=lambda r: r['match_score'], reverse=True)
    if limit and limit > 0:
        ranked = ranked[:limit]
    return ranked


def occupation_record(row: dict) -> dict:
    """Flatten a mapping row with an embedded occupation_data object."""
    occupation = row.get('occupation_data') or {}
    return {
        'onetsoc_code': row.get('onetsoc_code'),
        'title': occupation.get('title') or 'Unknown Title',
        'description': occupation.get('description') or 'No description available',
    }
