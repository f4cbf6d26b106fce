"""
Tests for the competency, major and occupation-detail services against the
seeded SQLite database.
"""

import threading

import pytest

from competency_service import (check_competency_mappings_exist, get_competency_mapping_stats,
                                get_jobs_by_competencies, top_competencies)
from data_source import DataSource, DataSourceError
from major_service import (check_major_mappings_exist, get_jobs_by_major, get_major_mapping_stats,
                           normalized_major_mappings)
from occupation_service import element_rows, get_detailed_job_info
from tests.conftest import GENERAL_MANAGER, GRAPHIC_DESIGNER, HR_SPECIALIST, NURSE, SOFTWARE_DEV


class FlakySource(DataSource):
    """Wraps a SQL source with several workers; one table always fails."""

    name = 'flaky'
    max_workers = 4

    def __init__(self, inner, failing_table):
        self.inner = inner
        self.failing_table = failing_table
        self.threads = set()
        self._lock = threading.Lock()

    def select(self, query):
        with self._lock:
            self.threads.add(threading.current_thread().name)
            if query.table == self.failing_table:
                raise DataSourceError(f'{query.table} timed out')
            return self.inner.select(query)

    def count(self, table):
        return self.inner.count(table)


class TestCompetencySearch:

    def test_ranked_results(self, sql_source):
        jobs = get_jobs_by_competencies(sql_source, ['Technology', 'Critical Thinking', 'Leadership'])
        assert [(j['onetsoc_code'], j['match_score']) for j in jobs] == [
            (GENERAL_MANAGER, 92),
            (SOFTWARE_DEV, 86),
            (GRAPHIC_DESIGNER, 65),
        ]
        assert jobs[0]['title'] == 'General and Operations Managers'
        assert set(jobs[0]) == {'onetsoc_code', 'title', 'description', 'match_score'}

    def test_occupations_without_overlap_excluded(self, sql_source):
        jobs = get_jobs_by_competencies(sql_source, ['Technology', 'Critical Thinking', 'Leadership'])
        codes = {j['onetsoc_code'] for j in jobs}
        assert HR_SPECIALIST not in codes
        assert NURSE not in codes

    def test_no_matches_is_empty_list(self, sql_source):
        jobs = get_jobs_by_competencies(sql_source, ['Career & Self-Development'])
        assert jobs == []

    def test_limit(self, sql_source):
        jobs = get_jobs_by_competencies(sql_source, ['Technology', 'Critical Thinking', 'Leadership'],
                                        limit=1)
        assert [j['onetsoc_code'] for j in jobs] == [GENERAL_MANAGER]

    def test_backend_failure_raises(self, broken_source):
        with pytest.raises(DataSourceError):
            get_jobs_by_competencies(broken_source, ['Technology', 'Teamwork', 'Leadership'])


class TestTopCompetencies:

    def test_prefers_full_scores(self):
        mapping = {'competency_1': 'Technology', 'competency_1_score': 90,
                   'competency_2': 'Critical Thinking', 'competency_2_score': 80,
                   'competency_3': 'Teamwork', 'competency_3_score': 70}
        scores = [{'competency_name': 'Technology', 'score': 4.5},
                  {'competency_name': 'Critical Thinking', 'score': 4.1},
                  {'competency_name': 'Teamwork', 'score': 3.6}]
        assert top_competencies(mapping, scores) == [
            {'competency_name': 'Technology', 'match_strength': 100},
            {'competency_name': 'Critical Thinking', 'match_strength': 60},
            {'competency_name': 'Teamwork', 'match_strength': 10},
        ]

    def test_falls_back_to_slot_scores(self):
        mapping = {'competency_1': 'Leadership', 'competency_1_score': 95,
                   'competency_2': 'Communication', 'competency_2_score': 88,
                   'competency_3': 'Critical Thinking', 'competency_3_score': 81}
        strengths = [c['match_strength'] for c in top_competencies(mapping, [])]
        assert strengths == [100, 55, 10]

    def test_equal_scores_all_ceiling(self):
        mapping = {'competency_1': 'A', 'competency_1_score': 50,
                   'competency_2': 'B', 'competency_2_score': 50,
                   'competency_3': 'C', 'competency_3_score': 50}
        assert [c['match_strength'] for c in top_competencies(mapping, None)] == [100, 100, 100]

    def test_no_mapping(self):
        assert top_competencies(None, []) == []


class TestMajorSearch:

    def test_ordered_and_capped(self, sql_source):
        jobs = get_jobs_by_major(sql_source, 'Business')
        assert [(j['onetsoc_code'], j['match_score']) for j in jobs] == [
            (GENERAL_MANAGER, 100),
            (HR_SPECIALIST, 66),
            (SOFTWARE_DEV, 40),
        ]

    def test_min_score_filters_raw_scores(self, sql_source):
        jobs = get_jobs_by_major(sql_source, 'Business', min_score=50)
        assert [j['onetsoc_code'] for j in jobs] == [GENERAL_MANAGER, HR_SPECIALIST]

    def test_limit(self, sql_source):
        jobs = get_jobs_by_major(sql_source, 'Business', limit=2)
        assert len(jobs) == 2

    def test_unknown_occupation_defaults(self, sql_source):
        jobs = get_jobs_by_major(sql_source, 'Sustainability')
        assert jobs == [{'onetsoc_code': '99-9999.00', 'title': 'Unknown Title',
                         'description': 'No description available', 'match_score': 50}]

    def test_no_rows_is_empty_list(self, sql_source):
        assert get_jobs_by_major(sql_source, 'Homeland Security') == []

    def test_backend_failure_raises(self, broken_source):
        with pytest.raises(DataSourceError):
            get_jobs_by_major(broken_source, 'Business')


class TestNormalizedMajorMappings:

    def test_floor_five(self):
        rows = [{'major_name': 'Technology', 'match_score': 92.4},
                {'major_name': 'Applied Technology', 'match_score': 80},
                {'major_name': 'Business', 'match_score': 40}]
        assert [r['match_score'] for r in normalized_major_mappings(rows)] == [100, 78, 5]
        # input rows untouched
        assert rows[0]['match_score'] == 92.4

    def test_single_major_is_ceiling(self):
        assert normalized_major_mappings([{'major_name': 'Arts', 'match_score': 12}]) == [
            {'major_name': 'Arts', 'match_score': 100}]

    def test_empty(self):
        assert normalized_major_mappings([]) == []
        assert normalized_major_mappings(None) == []


class TestJobDetails:

    def test_full_record(self, sql_source):
        job = get_detailed_job_info(sql_source, SOFTWARE_DEV)

        assert job['title'] == 'Software Developers'
        assert job['job_zone']['name'] == 'Job Zone Four: Considerable Preparation Needed'
        assert job['top_competencies'] == [
            {'competency_name': 'Technology', 'match_strength': 100},
            {'competency_name': 'Critical Thinking', 'match_strength': 60},
            {'competency_name': 'Teamwork', 'match_strength': 10},
        ]
        assert [(m['major_name'], m['match_score']) for m in job['major_mappings']] == [
            ('Technology', 100), ('Applied Technology', 78), ('Business', 5),
        ]
        assert [t['task_id'] for t in job['task_statements']] == [2, 1]
        assert {t['alternate_title'] for t in job['alternate_titles']} == {
            'Application Developer', 'Software Engineer'}
        assert len(job['all_competency_scores']) == 4
        assert [s['element_name'] for s in job['skills']] == [
            'Programming', 'Reading Comprehension', 'Critical Thinking']
        assert job['knowledge'][0]['element_name'] == 'Computers and Electronics'
        assert job['abilities'] == []
        assert job['work_activities'] == []

    def test_detail_sections(self, sql_source):
        job = get_detailed_job_info(sql_source, SOFTWARE_DEV)

        assert job['work_context'] == [{
            'element_id': '4.C.1.a.2.l', 'element_name': 'Face-to-Face Discussions',
            'element_description': '', 'data_value': 62.0,
            'category': 5, 'category_description': 'Every day',
        }]
        assert job['education_training'][0]['category_description'] == "Bachelor's Degree"
        assert [s['element_name'] for s in job['work_styles']] == ['Dependability']
        assert [v['element_name'] for v in job['work_values']] == ['Achievement']
        assert job['technology_skills'] == [{
            'example': 'React', 'commodity_code': 43232408, 'hot_technology': True,
            'commodity_title': 'Web platform development software',
            'class_title': 'Development software', 'family_title': 'Software',
            'segment_title': 'Information Technology',
        }]
        assert job['tools_used'][0]['hot_technology'] is False
        assert job['tools_used'][0]['commodity_title'] == 'Desktop computers'
        assert [(r['onetsoc_code'], r['title']) for r in job['related_occupations']] == [
            (GRAPHIC_DESIGNER, 'Graphic Designers'),
            (GENERAL_MANAGER, 'General and Operations Managers'),
        ]
        assert [t['reported_job_title'] for t in job['sample_titles']] == ['Software Architect']

    def test_sparse_occupation_sections_empty(self, sql_source):
        job = get_detailed_job_info(sql_source, NURSE)
        for key in ('work_context', 'work_styles', 'work_values', 'education_training',
                    'technology_skills', 'tools_used', 'related_occupations', 'sample_titles'):
            assert job[key] == []

    def test_parallel_sections_with_one_failing_table(self, sql_source):
        source = FlakySource(sql_source, failing_table='skills')
        job = get_detailed_job_info(source, SOFTWARE_DEV)

        assert job['skills'] == []
        assert job['title'] == 'Software Developers'
        assert [c['match_strength'] for c in job['top_competencies']] == [100, 60, 10]
        assert job['knowledge'][0]['element_name'] == 'Computers and Electronics'
        assert [t['task_id'] for t in job['task_statements']] == [2, 1]
        assert job['technology_skills'][0]['example'] == 'React'
        assert len(job['related_occupations']) == 2
        assert any(name != threading.main_thread().name for name in source.threads)

    def test_sparse_occupation(self, sql_source):
        job = get_detailed_job_info(sql_source, GENERAL_MANAGER)
        assert job['job_zone'] is None
        assert [c['match_strength'] for c in job['top_competencies']] == [100, 55, 10]
        assert [m['match_score'] for m in job['major_mappings']] == [100, 5]
        assert job['skills'] == []
        assert job['task_statements'] == []

    def test_missing_occupation(self, sql_source):
        assert get_detailed_job_info(sql_source, '00-0000.00') is None

    def test_backend_failure_raises(self, broken_source):
        with pytest.raises(DataSourceError):
            get_detailed_job_info(broken_source, SOFTWARE_DEV)

    def test_element_rows_defaults(self):
        rows = element_rows([{'element_id': '1.A', 'data_value': 3.0, 'content_model_reference': None}])
        assert rows == [{'element_id': '1.A', 'element_name': 'Unknown',
                         'element_description': '', 'data_value': 3.0}]


class TestMappingStats:

    def test_mappings_exist(self, sql_source):
        assert check_competency_mappings_exist(sql_source) is True
        assert check_major_mappings_exist(sql_source) is True

    def test_empty_tables(self, empty_source):
        assert check_competency_mappings_exist(empty_source) is False
        assert get_major_mapping_stats(empty_source) == {
            'total_mappings': 0, 'total_jobs': 0, 'coverage_percentage': 0}

    def test_coverage(self, sql_source):
        assert get_competency_mapping_stats(sql_source) == {
            'total_mappings': 5, 'total_jobs': 5, 'coverage_percentage': 100}
        assert get_major_mapping_stats(sql_source) == {
            'total_mappings': 11, 'total_jobs': 5, 'coverage_percentage': 220}

    def test_failures_are_reported_not_raised(self, broken_source):
        assert check_competency_mappings_exist(broken_source) is False
        assert check_major_mappings_exist(broken_source) is False
        assert get_competency_mapping_stats(broken_source) is None
        assert get_major_mapping_stats(broken_source) is None
