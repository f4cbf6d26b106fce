"""Course-major matching against O*NET occupations."""

import logging

from competency_service import OCCUPATION_SUMMARY, mapping_stats
from data_source import DataSourceError, Query
from scoring import MAJOR_FLOOR_PERCENT, cap_percent, normalize, occupation_record, to_number

logger = logging.getLogger(__name__)

MAPPING_TABLE = 'job_major_mappings'


def get_jobs_by_major(source, major, limit=None, min_score=None) -> list[dict]:
    """Occupations tagged with ``major``, highest raw match score first.

    Scores are capped at 100 and rounded, not normalized. ``min_score``
    filters on the raw score before capping.
    """
    query = (Query(MAPPING_TABLE)
             .eq('major_name', major)
             .embed('occupation_data', *OCCUPATION_SUMMARY)
             .order('match_score')
             .limit(limit))
    if min_score is not None:
        query.gte('match_score', min_score)

    jobs = []
    for row in source.select(query):
        record = occupation_record(row)
        record['match_score'] = cap_percent(row.get('match_score'))
        jobs.append(record)
    logger.info('Major search %r: %d jobs', major, len(jobs))
    return jobs


def normalized_major_mappings(rows) -> list[dict]:
    """Copy of an occupation's major rows with display match scores (5% floor)."""
    rows = list(rows or [])
    if not rows:
        return []
    display = normalize([to_number(r.get('match_score')) for r in rows], MAJOR_FLOOR_PERCENT)
    return [{**row, 'match_score': score} for row, score in zip(rows, display)]


def check_major_mappings_exist(source) -> bool:
    try:
        return source.count(MAPPING_TABLE) > 0
    except DataSourceError as e:
        logger.error('Error checking major mappings: %s', e)
        return False


def get_major_mapping_stats(source):
    try:
        return mapping_stats(source, MAPPING_TABLE)
    except DataSourceError as e:
        logger.error('Error fetching major mapping stats: %s', e)
        return None
