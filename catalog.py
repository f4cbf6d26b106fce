"""Selectable competencies and majors, and validation of user selections.

The names are the fixed reference lists the mapping tables were built
from. Callers choose the live or demo catalog from a connectivity check
(select_catalog); demo only changes how the UI labels itself.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REQUIRED_COMPETENCIES = 3

# (name, description) in display order
DEFAULT_COMPETENCIES = (
    ('Communication', 'Effectively exchange information, ideas, and thoughts with others'),
    ('Critical Thinking', 'Analyze, evaluate, and synthesize information to make informed decisions'),
    ('Leadership', 'Guide, motivate, and influence others to achieve common goals'),
    ('Teamwork', 'Work collaboratively with others to achieve shared objectives'),
    ('Technology', 'Use, understand, and adapt to technological tools and systems'),
    ('Professionalism', 'Demonstrate appropriate workplace behavior, ethics, and work habits'),
    ('Career & Self-Development', 'Manage personal career growth and continuous learning'),
    ('Equity & Inclusion', 'Work effectively with diverse groups and promote inclusive environments'),
)

DEFAULT_MAJORS = (
    ('Arts', 'Creative and visual arts including fine arts, performing arts, and design'),
    ('Social Sciences', 'Study of human society and social relationships'),
    ('Environmental Studies', 'Interdisciplinary study of environmental issues and sustainability'),
    ('Hospitality & Tourism Management', 'Management and operations in hospitality and tourism industries'),
    ('Applied Technology', 'Practical application of technology in various industries'),
    ('Business', 'Study of business operations, management, and entrepreneurship'),
    ('Communications', 'Study of communication theory and practice across various media'),
    ('Digital Media Arts', 'Creative and technical skills in digital media production'),
    ('Healthcare Administration', 'Management and administration in healthcare organizations'),
    ('Homeland Security', 'Study of security, emergency management, and public safety'),
    ('Human Resource Management', 'Management of human resources and organizational behavior'),
    ('Liberal Studies', 'Interdisciplinary study across multiple academic fields'),
    ('Public Administration', 'Study of government operations and public policy'),
    ('Technology', 'Study of computer science, information technology, and technical systems'),
    ('Sustainability', 'Study of environmental sustainability and sustainable practices'),
)


class InvalidSelectionError(ValueError):
    """The user picked an unknown, duplicate or wrong number of options."""


@dataclass(frozen=True)
class Catalog:
    competencies: tuple = DEFAULT_COMPETENCIES
    majors: tuple = DEFAULT_MAJORS
    is_demo: bool = False

    def competency_names(self) -> list[str]:
        return [name for name, _ in self.competencies]

    def major_names(self) -> list[str]:
        return [name for name, _ in self.majors]

    def validate_competencies(self, names) -> list[str]:
        """Return the selection stripped, or raise InvalidSelectionError."""
        if not isinstance(names, (list, tuple)):
            raise InvalidSelectionError(
                f'Please select exactly {REQUIRED_COMPETENCIES} competencies')
        cleaned = [str(n).strip() for n in names]
        if len(cleaned) != REQUIRED_COMPETENCIES:
            raise InvalidSelectionError(
                f'Please select exactly {REQUIRED_COMPETENCIES} competencies')
        if len(set(cleaned)) != len(cleaned):
            raise InvalidSelectionError('Please select three different competencies')
        known = set(self.competency_names())
        unknown = [n for n in cleaned if n not in known]
        if unknown:
            raise InvalidSelectionError(f'Unknown competency: {", ".join(unknown)}')
        return cleaned

    def validate_major(self, name) -> str:
        cleaned = str(name or '').strip()
        if not cleaned:
            raise InvalidSelectionError('Please select a major')
        if cleaned not in self.major_names():
            raise InvalidSelectionError(f'Unknown major: {cleaned}')
        return cleaned

    def to_dict(self) -> dict:
        return {
            'competencies': [{'name': n, 'description': d} for n, d in self.competencies],
            'majors': [{'name': n, 'description': d} for n, d in self.majors],
            'demo': self.is_demo,
        }


LIVE_CATALOG = Catalog()
DEMO_CATALOG = Catalog(is_demo=True)


def select_catalog(connected: bool) -> Catalog:
    """Pick the catalog for the result of a connectivity check."""
    if connected:
        return LIVE_CATALOG
    logger.warning('Database not available, using demo catalog')
    return DEMO_CATALOG
