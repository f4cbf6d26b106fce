"""Database models for the O*NET careers data: occupations and mappings.

The tables are filled by the offline mapping process; the app only reads
them. These models are also the fixed schema every Query is validated
against, whichever backend serves it.
"""

import os

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import declared_attr

db = SQLAlchemy()


class OccupationData(db.Model):
    __tablename__ = 'occupation_data'

    onetsoc_code = db.Column(db.String(10), primary_key=True)
    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)

    def __repr__(self):
        return f'<OccupationData {self.onetsoc_code} {self.title}>'


class JobNaceMapping(db.Model):
    """Top-3 NACE competencies per occupation, with cached raw scores."""
    __tablename__ = 'job_nace_mappings'

    onetsoc_code = db.Column(db.String(10), db.ForeignKey('occupation_data.onetsoc_code'),
                             primary_key=True)
    competency_1 = db.Column(db.String(64), nullable=False, index=True)
    competency_1_score = db.Column(db.Float, nullable=False)
    competency_2 = db.Column(db.String(64), nullable=False, index=True)
    competency_2_score = db.Column(db.Float, nullable=False)
    competency_3 = db.Column(db.String(64), nullable=False, index=True)
    competency_3_score = db.Column(db.Float, nullable=False)

    occupation = db.relationship('OccupationData')

    def __repr__(self):
        return (f'<JobNaceMapping {self.onetsoc_code} '
                f'{self.competency_1}/{self.competency_2}/{self.competency_3}>')


class JobCompetencyScore(db.Model):
    """Full ranked list of competency raw scores for an occupation."""
    __tablename__ = 'job_competency_scores'

    id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), db.ForeignKey('occupation_data.onetsoc_code'),
                             nullable=False, index=True)
    competency_name = db.Column(db.String(64), nullable=False)
    score = db.Column(db.Float, nullable=False)

    occupation = db.relationship('OccupationData')


class JobMajorMapping(db.Model):
    __tablename__ = 'job_major_mappings'

    id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), db.ForeignKey('occupation_data.onetsoc_code'),
                             nullable=False, index=True)
    major_name = db.Column(db.String(64), nullable=False, index=True)
    match_score = db.Column(db.Float, nullable=False)

    occupation = db.relationship('OccupationData')

    def __repr__(self):
        return f'<JobMajorMapping {self.onetsoc_code} {self.major_name}={self.match_score}>'


class JobZoneReference(db.Model):
    __tablename__ = 'job_zone_reference'

    job_zone = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    experience = db.Column(db.Text)
    education = db.Column(db.Text)
    job_training = db.Column(db.Text)
    examples = db.Column(db.Text)
    svp_range = db.Column(db.String(25))


class JobZone(db.Model):
    __tablename__ = 'job_zones'

    onetsoc_code = db.Column(db.String(10), db.ForeignKey('occupation_data.onetsoc_code'),
                             primary_key=True)
    job_zone = db.Column(db.Integer, db.ForeignKey('job_zone_reference.job_zone'),
                         nullable=False)

    reference = db.relationship('JobZoneReference')


class ContentModelReference(db.Model):
    __tablename__ = 'content_model_reference'

    element_id = db.Column(db.String(20), primary_key=True)
    element_name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)


class _ElementRating:
    """Columns shared by the O*NET rating tables (skills, knowledge, ...)."""

    id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), nullable=False, index=True)
    data_value = db.Column(db.Float)

    @declared_attr
    def element_id(cls):
        return db.Column(db.String(20), db.ForeignKey('content_model_reference.element_id'),
                         nullable=False)

    @declared_attr
    def element(cls):
        return db.relationship('ContentModelReference')


class Skill(_ElementRating, db.Model):
    __tablename__ = 'skills'


class Knowledge(_ElementRating, db.Model):
    __tablename__ = 'knowledge'


class Ability(_ElementRating, db.Model):
    __tablename__ = 'abilities'


class WorkActivity(_ElementRating, db.Model):
    __tablename__ = 'work_activities'


class WorkStyle(_ElementRating, db.Model):
    __tablename__ = 'work_styles'


class WorkValue(_ElementRating, db.Model):
    __tablename__ = 'work_values'


class WorkContextCategory(db.Model):
    __tablename__ = 'work_context_categories'

    element_id = db.Column(db.String(20), db.ForeignKey('content_model_reference.element_id'),
                           primary_key=True)
    scale_id = db.Column(db.String(3), primary_key=True)
    category = db.Column(db.Integer, primary_key=True)
    category_description = db.Column(db.String(1000), nullable=False)


class WorkContext(_ElementRating, db.Model):
    __tablename__ = 'work_context'
    __table_args__ = (
        db.ForeignKeyConstraint(
            ['element_id', 'scale_id', 'category'],
            ['work_context_categories.element_id', 'work_context_categories.scale_id',
             'work_context_categories.category']),
    )

    scale_id = db.Column(db.String(3))
    category = db.Column(db.Integer)

    category_info = db.relationship('WorkContextCategory', viewonly=True)


class EteCategory(db.Model):
    """Education, training and experience category labels."""
    __tablename__ = 'ete_categories'

    element_id = db.Column(db.String(20), db.ForeignKey('content_model_reference.element_id'),
                           primary_key=True)
    scale_id = db.Column(db.String(3), primary_key=True)
    category = db.Column(db.Integer, primary_key=True)
    category_description = db.Column(db.String(1000), nullable=False)


class EducationTrainingExperience(_ElementRating, db.Model):
    __tablename__ = 'education_training_experience'
    __table_args__ = (
        db.ForeignKeyConstraint(
            ['element_id', 'scale_id', 'category'],
            ['ete_categories.element_id', 'ete_categories.scale_id', 'ete_categories.category']),
    )

    scale_id = db.Column(db.String(3))
    category = db.Column(db.Integer)

    category_info = db.relationship('EteCategory', viewonly=True)


class UnspscReference(db.Model):
    __tablename__ = 'unspsc_reference'

    commodity_code = db.Column(db.Integer, primary_key=True)
    commodity_title = db.Column(db.String(150), nullable=False)
    class_code = db.Column(db.Integer)
    class_title = db.Column(db.String(150))
    family_code = db.Column(db.Integer)
    family_title = db.Column(db.String(150))
    segment_code = db.Column(db.Integer)
    segment_title = db.Column(db.String(150))


class _CommodityExample:
    """Columns shared by technology_skills and tools_used."""

    id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), nullable=False, index=True)
    example = db.Column(db.String(150), nullable=False)

    @declared_attr
    def commodity_code(cls):
        return db.Column(db.Integer, db.ForeignKey('unspsc_reference.commodity_code'))

    @declared_attr
    def commodity(cls):
        return db.relationship('UnspscReference')


class TechnologySkill(_CommodityExample, db.Model):
    __tablename__ = 'technology_skills'

    hot_technology = db.Column(db.String(1))
    in_demand = db.Column(db.String(1))


class ToolUsed(_CommodityExample, db.Model):
    __tablename__ = 'tools_used'


class RelatedOccupation(db.Model):
    __tablename__ = 'related_occupations'

    id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), db.ForeignKey('occupation_data.onetsoc_code'),
                             nullable=False, index=True)
    related_onetsoc_code = db.Column(db.String(10),
                                     db.ForeignKey('occupation_data.onetsoc_code'),
                                     nullable=False)
    relatedness_tier = db.Column(db.String(50))
    related_index = db.Column(db.Integer)

    # onetsoc_code also points at occupation_data, so the join column is explicit
    related = db.relationship('OccupationData', foreign_keys=[related_onetsoc_code])


class TaskStatement(db.Model):
    __tablename__ = 'task_statements'

    task_id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), nullable=False, index=True)
    task = db.Column(db.Text, nullable=False)
    task_type = db.Column(db.String(12))
    incumbents_responding = db.Column(db.Integer)


class AlternateTitle(db.Model):
    __tablename__ = 'alternate_titles'

    id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), nullable=False, index=True)
    alternate_title = db.Column(db.String(250), nullable=False)
    short_title = db.Column(db.String(150))


class SampleOfReportedTitle(db.Model):
    __tablename__ = 'sample_of_reported_titles'

    id = db.Column(db.Integer, primary_key=True)
    onetsoc_code = db.Column(db.String(10), nullable=False, index=True)
    reported_job_title = db.Column(db.String(150), nullable=False)
    shown_in_my_next_move = db.Column(db.String(1))


MODELS = (
    OccupationData, JobNaceMapping, JobCompetencyScore, JobMajorMapping,
    JobZoneReference, JobZone, ContentModelReference,
    Skill, Knowledge, Ability, WorkActivity, WorkStyle, WorkValue,
    WorkContextCategory, WorkContext, EteCategory, EducationTrainingExperience,
    UnspscReference, TechnologySkill, ToolUsed, RelatedOccupation,
    TaskStatement, AlternateTitle, SampleOfReportedTitle,
)

# table name -> model class
TABLES = {model.__tablename__: model for model in MODELS}


def table_columns(table: str) -> set:
    """Column names of a known table (empty set if unknown)."""
    model = TABLES.get(table)
    if model is None:
        return set()
    return set(model.__table__.columns.keys())


def database_uri() -> str:
    """Resolve the SQLAlchemy URI: DATABASE_URL, else a local SQLite file."""
    database_url = os.environ.get('DATABASE_URL', '')
    if database_url:
        # Hosted Postgres URLs often start with postgres:// but SQLAlchemy needs postgresql://
        if database_url.startswith('postgres://'):
            database_url = database_url.replace('postgres://', 'postgresql://', 1)
        return database_url
    _db_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'careers.db')
    return f'sqlite:///{_db_path}'


def init_db(app, create_tables: bool = True):
    """Bind the models to a Flask app and optionally create missing tables."""
    app.config.setdefault('SQLALCHEMY_DATABASE_URI', database_uri())
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    db.init_app(app)
    if create_tables:
        with app.app_context():
            db.create_all()
