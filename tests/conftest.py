"""
Pytest configuration and shared fixtures.

Every test runs against an in-memory SQLite database seeded with a small
slice of O*NET data; Supabase settings are blanked so nothing reaches the
network.
"""

import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SUPABASE_URL'] = ''
os.environ['SUPABASE_SECRET_KEY'] = ''
os.environ['SUPABASE_SERVICE_ROLE_KEY'] = ''
os.environ['RESULTS_LIMIT'] = '0'

import pytest
from flask import Flask

from data_source import DataSource, DataSourceError, SqlDataSource
from models import (AlternateTitle, ContentModelReference, EducationTrainingExperience, EteCategory,
                    JobCompetencyScore, JobMajorMapping, JobNaceMapping, JobZone, JobZoneReference,
                    Knowledge, OccupationData, RelatedOccupation, SampleOfReportedTitle, Skill,
                    TaskStatement, TechnologySkill, ToolUsed, UnspscReference, WorkContext,
                    WorkContextCategory, WorkStyle, WorkValue, db, init_db)

SOFTWARE_DEV = '15-1252.00'
HR_SPECIALIST = '13-1071.00'
GRAPHIC_DESIGNER = '27-1024.00'
GENERAL_MANAGER = '11-1021.00'
NURSE = '29-1141.00'


def seed_careers(session):
    """Load a handful of occupations with competency and major mappings."""
    session.add_all([
        OccupationData(onetsoc_code=SOFTWARE_DEV, title='Software Developers',
                       description='Research, design, and develop computer and network software.'),
        OccupationData(onetsoc_code=HR_SPECIALIST, title='Human Resources Specialists',
                       description='Recruit, screen, interview, or place individuals.'),
        OccupationData(onetsoc_code=GRAPHIC_DESIGNER, title='Graphic Designers',
                       description='Design or create graphics to meet specific commercial needs.'),
        OccupationData(onetsoc_code=GENERAL_MANAGER, title='General and Operations Managers',
                       description='Plan, direct, or coordinate the operations of organizations.'),
        OccupationData(onetsoc_code=NURSE, title='Registered Nurses',
                       description='Assess patient health problems and needs.'),
    ])

    def nace(code, c1, s1, c2, s2, c3, s3):
        return JobNaceMapping(onetsoc_code=code, competency_1=c1, competency_1_score=s1,
                              competency_2=c2, competency_2_score=s2,
                              competency_3=c3, competency_3_score=s3)

    session.add_all([
        nace(SOFTWARE_DEV, 'Technology', 90, 'Critical Thinking', 80, 'Teamwork', 70),
        nace(HR_SPECIALIST, 'Communication', 85, 'Professionalism', 75, 'Equity & Inclusion', 65),
        nace(GRAPHIC_DESIGNER, 'Technology', 70, 'Communication', 60, 'Critical Thinking', 50),
        nace(GENERAL_MANAGER, 'Leadership', 95, 'Communication', 88, 'Critical Thinking', 81),
        nace(NURSE, 'Professionalism', 80, 'Teamwork', 78, 'Communication', 76),
    ])

    session.add_all([
        JobCompetencyScore(onetsoc_code=SOFTWARE_DEV, competency_name=name, score=score)
        for name, score in (('Technology', 4.5), ('Critical Thinking', 4.1),
                            ('Teamwork', 3.6), ('Communication', 3.0))
    ])

    session.add_all([
        JobMajorMapping(onetsoc_code=code, major_name=major, match_score=score)
        for code, major, score in (
            (SOFTWARE_DEV, 'Technology', 92.4),
            (SOFTWARE_DEV, 'Applied Technology', 80),
            (SOFTWARE_DEV, 'Business', 40),
            (GRAPHIC_DESIGNER, 'Digital Media Arts', 88),
            (GRAPHIC_DESIGNER, 'Arts', 75.6),
            (GRAPHIC_DESIGNER, 'Technology', 60),
            (GENERAL_MANAGER, 'Business', 105),
            (GENERAL_MANAGER, 'Human Resource Management', 70),
            (HR_SPECIALIST, 'Human Resource Management', 90),
            (HR_SPECIALIST, 'Business', 65.5),
            ('99-9999.00', 'Sustainability', 50),
        )
    ])

    session.add(JobZoneReference(job_zone=4, name='Job Zone Four: Considerable Preparation Needed',
                                 experience='A minimum of two to four years of work-related skill.',
                                 education="Most of these occupations require a four-year bachelor's degree.",
                                 job_training='Several years of work-related experience.',
                                 examples='Software developers, accountants', svp_range='(7.0 to < 8.0)'))
    session.add(JobZone(onetsoc_code=SOFTWARE_DEV, job_zone=4))

    session.add_all([
        ContentModelReference(element_id='2.A.1.a', element_name='Reading Comprehension'),
        ContentModelReference(element_id='2.A.2.a', element_name='Critical Thinking'),
        ContentModelReference(element_id='2.B.3.e', element_name='Programming'),
        ContentModelReference(element_id='2.C.3.a', element_name='Computers and Electronics'),
    ])
    session.add_all([
        Skill(onetsoc_code=SOFTWARE_DEV, element_id='2.A.1.a', data_value=3.9),
        Skill(onetsoc_code=SOFTWARE_DEV, element_id='2.B.3.e', data_value=4.2),
        Skill(onetsoc_code=SOFTWARE_DEV, element_id='2.A.2.a', data_value=3.75),
        Knowledge(onetsoc_code=SOFTWARE_DEV, element_id='2.C.3.a', data_value=4.6),
    ])
    session.add_all([
        TaskStatement(task_id=1, onetsoc_code=SOFTWARE_DEV, task='Modify existing software.',
                      incumbents_responding=40),
        TaskStatement(task_id=2, onetsoc_code=SOFTWARE_DEV, task='Analyze user needs.',
                      incumbents_responding=55),
        AlternateTitle(onetsoc_code=SOFTWARE_DEV, alternate_title='Application Developer'),
        AlternateTitle(onetsoc_code=SOFTWARE_DEV, alternate_title='Software Engineer'),
    ])
    seed_detail_sections(session)
    session.commit()


def seed_detail_sections(session):
    """Work context, styles, values, education, tools and related jobs for SOFTWARE_DEV."""
    session.add_all([
        ContentModelReference(element_id='4.C.1.a.2.l', element_name='Face-to-Face Discussions'),
        ContentModelReference(element_id='1.C.5.a', element_name='Dependability'),
        ContentModelReference(element_id='1.B.2.a', element_name='Achievement'),
        ContentModelReference(element_id='2.D.1', element_name='Required Level of Education'),
    ])
    session.add_all([
        WorkContextCategory(element_id='4.C.1.a.2.l', scale_id='CXP', category=5,
                            category_description='Every day'),
        EteCategory(element_id='2.D.1', scale_id='RL', category=6,
                    category_description="Bachelor's Degree"),
    ])
    session.add_all([
        WorkContext(onetsoc_code=SOFTWARE_DEV, element_id='4.C.1.a.2.l', scale_id='CXP',
                    category=5, data_value=62.0),
        WorkStyle(onetsoc_code=SOFTWARE_DEV, element_id='1.C.5.a', data_value=4.3),
        WorkValue(onetsoc_code=SOFTWARE_DEV, element_id='1.B.2.a', data_value=5.1),
        EducationTrainingExperience(onetsoc_code=SOFTWARE_DEV, element_id='2.D.1', scale_id='RL',
                                    category=6, data_value=61.3),
    ])
    session.add_all([
        UnspscReference(commodity_code=43232408, commodity_title='Web platform development software',
                        class_title='Development software', family_title='Software',
                        segment_title='Information Technology'),
        UnspscReference(commodity_code=43211507, commodity_title='Desktop computers',
                        class_title='Computers', family_title='Computer Equipment',
                        segment_title='Information Technology'),
    ])
    session.add_all([
        TechnologySkill(onetsoc_code=SOFTWARE_DEV, example='React', commodity_code=43232408,
                        hot_technology='Y'),
        ToolUsed(onetsoc_code=SOFTWARE_DEV, example='Desktop computers', commodity_code=43211507),
        RelatedOccupation(onetsoc_code=SOFTWARE_DEV, related_onetsoc_code=GENERAL_MANAGER,
                          relatedness_tier='Supplemental', related_index=2),
        RelatedOccupation(onetsoc_code=SOFTWARE_DEV, related_onetsoc_code=GRAPHIC_DESIGNER,
                          relatedness_tier='Primary-Short', related_index=1),
        SampleOfReportedTitle(onetsoc_code=SOFTWARE_DEV, reported_job_title='Software Architect'),
    ])


class BrokenSource(DataSource):
    """Data source whose backend is always unreachable."""

    name = 'broken'

    def select(self, query):
        raise DataSourceError('backend unreachable')

    def count(self, table):
        raise DataSourceError('backend unreachable')


@pytest.fixture
def sql_app():
    """Standalone Flask app bound to a fresh, seeded in-memory database."""
    flask_app = Flask(__name__)
    flask_app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
    init_db(flask_app)
    with flask_app.app_context():
        seed_careers(db.session)
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def sql_source(sql_app) -> SqlDataSource:
    return SqlDataSource(sql_app)


@pytest.fixture
def empty_source():
    """SQL data source with the tables created but nothing loaded."""
    flask_app = Flask(__name__)
    flask_app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
    init_db(flask_app)
    yield SqlDataSource(flask_app)
    with flask_app.app_context():
        db.drop_all()


@pytest.fixture
def broken_source() -> BrokenSource:
    return BrokenSource()


@pytest.fixture
def web_app():
    """The real Flask app with its database reset and seeded."""
    import app as app_module

    flask_app = app_module.app
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        seed_careers(db.session)
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(web_app):
    return web_app.test_client()
