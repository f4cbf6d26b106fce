"""NACE competency matching against O*NET occupations.

Each occupation carries its top-3 competencies in job_nace_mappings; a
search returns every occupation that shares at least one of the user's
three competencies, ranked by the weighted slot score.
"""

import logging

from data_source import DataSourceError, Query
from scoring import (COMPETENCY_FLOOR_PERCENT, normalize, rank_by_competencies,
                     round_half_up, to_number)

logger = logging.getLogger(__name__)

MAPPING_TABLE = 'job_nace_mappings'
SCORES_TABLE = 'job_competency_scores'
SLOT_COLUMNS = ('competency_1', 'competency_2', 'competency_3')
OCCUPATION_SUMMARY = ('onetsoc_code', 'title', 'description')


def get_jobs_by_competencies(source, competencies, limit=None) -> list[dict]:
    """Rank occupations for a selection of three competencies.

    Returns [{onetsoc_code, title, description, match_score}], best first.
    An empty list means no occupation shares a competency with the
    selection; backend failures raise DataSourceError.
    """
    selected = sorted(competencies)
    query = (Query(MAPPING_TABLE)
             .in_any(SLOT_COLUMNS, selected)
             .embed('occupation_data', *OCCUPATION_SUMMARY)
             .order('competency_1_score'))
    rows = source.select(query)
    jobs = rank_by_competencies(selected, rows, limit=limit)
    logger.info('Competency search %s: %d candidates, %d ranked',
                selected, len(rows), len(jobs))
    return jobs


def top_competencies(nace_mapping, competency_scores) -> list[dict]:
    """The occupation's top-3 competencies with display strengths.

    Raw scores come from the full score list when it has the competency,
    else from the cached slot score; the three are normalized together
    with a 10% floor.
    """
    if not nace_mapping:
        return []

    score_by_name = {}
    for row in competency_scores or []:
        score_by_name[row.get('competency_name')] = to_number(row.get('score'))

    names = []
    raw = []
    for i in (1, 2, 3):
        name = nace_mapping.get(f'competency_{i}')
        names.append(name)
        if name in score_by_name:
            raw.append(score_by_name[name])
        else:
            raw.append(to_number(nace_mapping.get(f'competency_{i}_score')))

    strengths = normalize(raw, COMPETENCY_FLOOR_PERCENT)
    return [{'competency_name': name, 'match_strength': strength}
            for name, strength in zip(names, strengths)]


# ---------------------------------------------------------------------------
# Mapping health / statistics
# ---------------------------------------------------------------------------

def check_competency_mappings_exist(source) -> bool:
    try:
        return source.count(MAPPING_TABLE) > 0
    except DataSourceError as e:
        logger.error('Error checking competency mappings: %s', e)
        return False


def mapping_stats(source, table):
    """{total_mappings, total_jobs, coverage_percentage} for a mapping table."""
    total_mappings = source.count(table)
    total_jobs = source.count('occupation_data')
    coverage = round_half_up(total_mappings / total_jobs * 100) if total_jobs > 0 else 0
    return {
        'total_mappings': total_mappings,
        'total_jobs': total_jobs,
        'coverage_percentage': coverage,
    }


def get_competency_mapping_stats(source):
    """Mapping statistics, or None if the counts could not be read."""
    try:
        return mapping_stats(source, MAPPING_TABLE)
    except DataSourceError as e:
        logger.error('Error fetching competency mapping stats: %s', e)
        return None
