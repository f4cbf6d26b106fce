"""Detailed occupation record for the job-details page and API.

The occupation row is read first; the enrichment sections are independent
reads issued in parallel once we know the occupation exists. A section
that fails to load is logged and left empty.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from competency_service import top_competencies
from data_source import DataSourceError, Query
from major_service import normalized_major_mappings

logger = logging.getLogger(__name__)

ELEMENT_LIMIT = 15
CONTEXT_LIMIT = 10
EXAMPLE_LIMIT = 20
TASK_LIMIT = 20
TITLE_LIMIT = 10
RELATED_LIMIT = 10

# record key -> (rating table, category table or None, row limit)
RATING_SECTIONS = {
    'skills': ('skills', None, ELEMENT_LIMIT),
    'knowledge': ('knowledge', None, ELEMENT_LIMIT),
    'abilities': ('abilities', None, ELEMENT_LIMIT),
    'work_activities': ('work_activities', None, ELEMENT_LIMIT),
    'work_context': ('work_context', 'work_context_categories', CONTEXT_LIMIT),
    'work_styles': ('work_styles', None, CONTEXT_LIMIT),
    'work_values': ('work_values', None, CONTEXT_LIMIT),
    'education_training': ('education_training_experience', 'ete_categories', ELEMENT_LIMIT),
}
EXAMPLE_SECTIONS = ('technology_skills', 'tools_used')
UNSPSC_COLUMNS = ('commodity_title', 'class_title', 'family_title', 'segment_title')
RELATED_FKEY = 'related_occupations_related_onetsoc_code_fkey'


def _section_queries(code: str) -> dict:
    """section name -> (query, expect a single row)"""
    sections = {
        'job_zone': (Query('job_zones').eq('onetsoc_code', code)
                     .embed('job_zone_reference', 'job_zone', 'name', 'experience',
                            'education', 'job_training', 'examples', 'svp_range'), True),
        'nace_mapping': (Query('job_nace_mappings').eq('onetsoc_code', code), True),
        'competency_scores': (Query('job_competency_scores').eq('onetsoc_code', code)
                              .order('score'), False),
        'major_mappings': (Query('job_major_mappings').eq('onetsoc_code', code)
                           .order('match_score'), False),
        'task_statements': (Query('task_statements').eq('onetsoc_code', code)
                            .order('incumbents_responding').limit(TASK_LIMIT), False),
        'related_occupations': (Query('related_occupations').eq('onetsoc_code', code)
                                .embed('occupation_data', 'title', 'description',
                                       hint=RELATED_FKEY)
                                .order('related_index', descending=False)
                                .limit(RELATED_LIMIT), False),
        'alternate_titles': (Query('alternate_titles').eq('onetsoc_code', code)
                             .limit(TITLE_LIMIT), False),
        'sample_titles': (Query('sample_of_reported_titles').eq('onetsoc_code', code)
                          .limit(TITLE_LIMIT), False),
    }
    for key, (table, category_table, limit) in RATING_SECTIONS.items():
        query = (Query(table).eq('onetsoc_code', code)
                 .embed('content_model_reference', 'element_name', 'description'))
        if category_table:
            query.embed(category_table, 'category_description')
        sections[key] = (query.order('data_value').limit(limit), False)
    for table in EXAMPLE_SECTIONS:
        sections[table] = (Query(table).eq('onetsoc_code', code)
                           .embed('unspsc_reference', *UNSPSC_COLUMNS)
                           .limit(EXAMPLE_LIMIT), False)
    return sections


def _fetch_section(source, name, query, single):
    try:
        if single:
            return source.first(query)
        return source.select(query)
    except DataSourceError as e:
        logger.warning('Could not load %s for %s: %s', name, query.filters, e)
        return None if single else []


def _fetch_sections(source, code: str) -> dict:
    sections = _section_queries(code)
    if source.max_workers <= 1:
        return {name: _fetch_section(source, name, query, single)
                for name, (query, single) in sections.items()}

    results = {}
    with ThreadPoolExecutor(max_workers=source.max_workers) as executor:
        futures = {
            executor.submit(_fetch_section, source, name, query, single): name
            for name, (query, single) in sections.items()
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    return results


def element_rows(rows, category_table=None) -> list[dict]:
    """Flatten the embedded content_model_reference name onto each rating row.

    Rows from tables with category labels (work context, education) also
    get a ``category_description``.
    """
    flattened = []
    for row in rows or []:
        reference = row.get('content_model_reference') or {}
        item = {
            'element_id': row.get('element_id'),
            'element_name': reference.get('element_name') or 'Unknown',
            'element_description': reference.get('description') or '',
            'data_value': row.get('data_value'),
        }
        if category_table:
            category = row.get(category_table) or {}
            item['category'] = row.get('category')
            item['category_description'] = category.get('category_description') or ''
        flattened.append(item)
    return flattened


def example_rows(rows) -> list[dict]:
    """Technology or tool examples with their UNSPSC commodity titles."""
    flattened = []
    for row in rows or []:
        commodity = row.get('unspsc_reference') or {}
        item = {
            'example': row.get('example'),
            'commodity_code': row.get('commodity_code'),
            'hot_technology': row.get('hot_technology') == 'Y',
        }
        for column in UNSPSC_COLUMNS:
            item[column] = commodity.get(column)
        flattened.append(item)
    return flattened


def related_rows(rows) -> list[dict]:
    flattened = []
    for row in rows or []:
        occupation = row.get('occupation_data') or {}
        flattened.append({
            'onetsoc_code': row.get('related_onetsoc_code'),
            'title': occupation.get('title') or 'Unknown Title',
            'description': occupation.get('description') or '',
            'relatedness_tier': row.get('relatedness_tier'),
            'related_index': row.get('related_index'),
        })
    return flattened


def get_detailed_job_info(source, onetsoc_code: str):
    """Full enriched record for one occupation, or None if it doesn't exist."""
    occupation = source.first(Query('occupation_data').eq('onetsoc_code', onetsoc_code))
    if not occupation:
        logger.info('Occupation %s not found', onetsoc_code)
        return None

    sections = _fetch_sections(source, onetsoc_code)
    job_zone = sections.get('job_zone') or {}
    competency_scores = sections.get('competency_scores') or []

    job = {
        'onetsoc_code': occupation.get('onetsoc_code'),
        'title': occupation.get('title'),
        'description': occupation.get('description'),
        'job_zone': job_zone.get('job_zone_reference'),
        'top_competencies': top_competencies(sections.get('nace_mapping'), competency_scores),
        'major_mappings': normalized_major_mappings(sections.get('major_mappings')),
        'task_statements': sections.get('task_statements') or [],
        'related_occupations': related_rows(sections.get('related_occupations')),
        'alternate_titles': sections.get('alternate_titles') or [],
        'sample_titles': sections.get('sample_titles') or [],
        'all_competency_scores': competency_scores,
    }
    for key, (_, category_table, _) in RATING_SECTIONS.items():
        job[key] = element_rows(sections.get(key), category_table)
    for table in EXAMPLE_SECTIONS:
        job[table] = example_rows(sections.get(table))
    return job
