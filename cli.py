"""Terminal interface for the careers explorer.

    python cli.py                          # interactive menu
    python cli.py competencies Communication Leadership Teamwork
    python cli.py major "Business" --min-score 50 --limit 10
    python cli.py job 15-1252.00
    python cli.py stats
    python cli.py init-db
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv
from flask import Flask

from catalog import InvalidSelectionError, select_catalog
from competency_service import (check_competency_mappings_exist, get_competency_mapping_stats,
                                get_jobs_by_competencies)
from data_source import DataSourceError, build_data_source
from major_service import check_major_mappings_exist, get_jobs_by_major, get_major_mapping_stats
from models import init_db
from occupation_service import get_detailed_job_info

logger = logging.getLogger(__name__)

DESCRIPTION_WIDTH = 80
DETAIL_ITEMS = 10


def create_cli_app(create_tables: bool = False) -> Flask:
    """Minimal Flask app that only carries the database binding."""
    app = Flask(__name__)
    init_db(app, create_tables=create_tables)
    return app


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def _shorten(text, width=DESCRIPTION_WIDTH) -> str:
    if not text:
        return 'No description available'
    text = ' '.join(text.split())
    if len(text) > width:
        return text[:width] + '...'
    return text


def format_jobs(jobs, title='Matching Career Opportunities') -> str:
    """Render ranked jobs as a plain-text table."""
    lines = ['', title, '=' * len(title)]
    if not jobs:
        lines.append('No matching careers found. Try different selections.')
        return '\n'.join(lines)

    rows = [('Rank', 'Job Title', 'Match', 'Description')]
    for i, job in enumerate(jobs, 1):
        rows.append((f'{i}.', job['title'], f'{job["match_score"]}%',
                     _shorten(job.get('description'))))
    widths = [max(len(row[col]) for row in rows) for col in range(3)]
    for row in rows:
        lines.append('  '.join(cell.ljust(widths[col]) for col, cell in enumerate(row[:3]))
                     + '  ' + row[3])
    return '\n'.join(lines)


def format_job_details(job) -> str:
    lines = ['', f'Job Title: {job["title"]}', f'O*NET-SOC Code: {job["onetsoc_code"]}', '']
    if job.get('description'):
        lines += ['Job Description:', job['description'], '']

    zone = job.get('job_zone')
    if zone:
        lines += ['Job Zone Information:',
                  f'  Zone: {zone.get("name")}',
                  f'  Experience Required: {zone.get("experience")}',
                  f'  Education Required: {zone.get("education")}',
                  f'  Job Training: {zone.get("job_training")}', '']

    if job.get('top_competencies'):
        lines.append('Top Matching NACE Competencies:')
        for i, comp in enumerate(job['top_competencies'], 1):
            lines.append(f'  {i}. {comp["competency_name"]} ({comp["match_strength"]}% match)')
        lines.append('')

    if job.get('major_mappings'):
        lines.append('Related Majors:')
        for major in job['major_mappings']:
            lines.append(f'  - {major["major_name"]} ({major["match_score"]}%)')
        lines.append('')

    for key, label in (('skills', 'Key Skills Required'), ('knowledge', 'Knowledge Areas')):
        if job.get(key):
            lines.append(f'{label}:')
            for i, item in enumerate(job[key][:DETAIL_ITEMS], 1):
                value = item.get('data_value')
                level = round(value) if value is not None else 'N/A'
                lines.append(f'  {i}. {item["element_name"]} (Level: {level})')
            lines.append('')

    if job.get('technology_skills'):
        lines.append('Technology Skills:')
        for item in job['technology_skills'][:DETAIL_ITEMS]:
            hot = ' [hot]' if item.get('hot_technology') else ''
            lines.append(f'  - {item["example"]}{hot}')
        lines.append('')

    if job.get('related_occupations'):
        lines.append('Related Occupations:')
        for related in job['related_occupations']:
            lines.append(f'  - {related["title"]} ({related["onetsoc_code"]})')
        lines.append('')
    return '\n'.join(lines)


def format_stats(competency_stats, major_stats) -> str:
    lines = ['', 'Application Statistics', '']
    for label, stats in (('Competency Mappings', competency_stats),
                         ('Major Mappings', major_stats)):
        if not stats:
            lines += [f'{label}: unavailable', '']
            continue
        lines += [f'{label}:',
                  f'  Total mappings: {stats["total_mappings"]}',
                  f'  Total jobs: {stats["total_jobs"]}',
                  f'  Coverage: {stats["coverage_percentage"]}%', '']
    return '\n'.join(lines)


ABOUT_TEXT = """
About the O*NET Careers Explorer

This application helps you discover career paths based on:
  - Your top 3 NACE competencies (strengths)
  - Your course major or field of study

It uses the O*NET occupational database to match your skills and interests
with real career opportunities. NACE competencies are industry-recognized
skills that employers value across all career fields.
"""


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Interactive prompts
# ---------------------------------------------------------------------------

def choose_one(prompt, options, allow_back=False):
    """Numbered single choice. Returns the option, or None for 'back'."""
    for i, option in enumerate(options, 1):
        print(f'  {i}. {option}')
    if allow_back:
        print('  0. Back')
    while True:
        answer = input(f'{prompt} ').strip()
        if allow_back and answer in ('', '0'):
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        print('Please enter one of the numbers above.')


def choose_competencies(catalog) -> list[str]:
    names = catalog.competency_names()
    print('\nSelect your top 3 strongest competencies:')
    for i, (name, description) in enumerate(catalog.competencies, 1):
        print(f'  {i}. {name} - {description}')
    while True:
        answer = input('Enter three numbers separated by commas: ')
        picks = [p.strip() for p in answer.replace(' ', ',').split(',') if p.strip()]
        try:
            if not all(p.isdigit() and 1 <= int(p) <= len(names) for p in picks):
                raise InvalidSelectionError('Please enter numbers from the list')
            return catalog.validate_competencies([names[int(p) - 1] for p in picks])
        except InvalidSelectionError as e:
            print(e)


def show_results_and_details(source, jobs, title):
    print(format_jobs(jobs, title))
    if not jobs:
        return
    labels = [f'{job["title"]} ({job["match_score"]}% match)' for job in jobs]
    choice = choose_one('Select a job for details (0 to go back):', labels, allow_back=True)
    if choice is None:
        return
    show_job(source, jobs[labels.index(choice)]['onetsoc_code'])


def show_job(source, onetsoc_code, as_json=False) -> int:
    try:
        job = get_detailed_job_info(source, onetsoc_code)
    except DataSourceError as e:
        print(f'Error loading job details: {e}', file=sys.stderr)
        return 1
    if not job:
        print(f'Job details not found for {onetsoc_code}', file=sys.stderr)
        return 1
    if as_json:
        _print_json(job)
    else:
        print(format_job_details(job))
    return 0


def handle_competency_search(source, catalog):
    selected = choose_competencies(catalog)
    try:
        jobs = get_jobs_by_competencies(source, selected)
    except DataSourceError as e:
        print(f'Error in competency search: {e}', file=sys.stderr)
        return
    show_results_and_details(source, jobs, f'Careers matching: {", ".join(selected)}')


def handle_major_search(source, catalog):
    print('\nSelect your course major:')
    major = choose_one('Choose your course major:', catalog.major_names())
    try:
        jobs = get_jobs_by_major(source, major)
    except DataSourceError as e:
        print(f'Error in major search: {e}', file=sys.stderr)
        return
    show_results_and_details(source, jobs, f'Careers related to {major}')


def initialize_app(source) -> bool:
    """Connection and mapping checks before the interactive loop."""
    if not source.ping():
        print('Failed to connect to database', file=sys.stderr)
        return False
    if not check_competency_mappings_exist(source):
        print('Competency mappings not found. Load the mapping tables first.', file=sys.stderr)
        return False
    if not check_major_mappings_exist(source):
        print('Major mappings not found. Load the mapping tables first.', file=sys.stderr)
        return False

    competency_stats = get_competency_mapping_stats(source)
    major_stats = get_major_mapping_stats(source)
    if competency_stats and major_stats:
        print(f'Found {competency_stats["total_mappings"]} competency mappings')
        print(f'Found {major_stats["total_mappings"]} major mappings')
        print(f'Coverage: {competency_stats["coverage_percentage"]}% of jobs have '
              f'competency mappings')
    return True


MENU = (
    ('competencies', 'Find careers by my top 3 competencies'),
    ('major', 'Find careers by my course major'),
    ('stats', 'View statistics'),
    ('about', 'About this app'),
    ('exit', 'Exit'),
)


def run_interactive(source) -> int:
    if not initialize_app(source):
        print('\nApplication initialization failed. Please ensure the database '
              'connection works and the mapping tables are populated.', file=sys.stderr)
        return 1

    catalog = select_catalog(True)
    print('\nO*NET CAREERS EXPLORER - Discover Your Perfect Career Path')
    labels = [label for _, label in MENU]
    try:
        while True:
            print('\nWhat would you like to do?')
            action = MENU[labels.index(choose_one('>', labels))][0]
            if action == 'competencies':
                handle_competency_search(source, catalog)
            elif action == 'major':
                handle_major_search(source, catalog)
            elif action == 'stats':
                print(format_stats(get_competency_mapping_stats(source),
                                   get_major_mapping_stats(source)))
            elif action == 'about':
                print(ABOUT_TEXT)
            else:
                break
    except (EOFError, KeyboardInterrupt):
        print()
    print('Thank you for using the O*NET Careers Explorer!')
    return 0


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def cmd_competencies(args, source) -> int:
    try:
        selected = select_catalog(True).validate_competencies(args.names)
    except InvalidSelectionError as e:
        print(e, file=sys.stderr)
        return 2
    try:
        jobs = get_jobs_by_competencies(source, selected, limit=args.limit)
    except DataSourceError as e:
        print(f'Error in competency search: {e}', file=sys.stderr)
        return 1
    if args.json:
        _print_json({'jobs': jobs, 'count': len(jobs)})
    else:
        print(format_jobs(jobs, f'Careers matching: {", ".join(selected)}'))
    return 0


def cmd_major(args, source) -> int:
    try:
        major = select_catalog(True).validate_major(args.name)
    except InvalidSelectionError as e:
        print(e, file=sys.stderr)
        return 2
    try:
        jobs = get_jobs_by_major(source, major, limit=args.limit, min_score=args.min_score)
    except DataSourceError as e:
        print(f'Error in major search: {e}', file=sys.stderr)
        return 1
    if args.json:
        _print_json({'jobs': jobs, 'count': len(jobs)})
    else:
        print(format_jobs(jobs, f'Careers related to {major}'))
    return 0


def cmd_job(args, source) -> int:
    return show_job(source, args.code, as_json=args.json)


def cmd_stats(args, source) -> int:
    competency_stats = get_competency_mapping_stats(source)
    major_stats = get_major_mapping_stats(source)
    if args.json:
        _print_json({'competency_mappings': competency_stats, 'major_mappings': major_stats})
    else:
        print(format_stats(competency_stats, major_stats))
    return 0 if competency_stats and major_stats else 1


def positive_int(value) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f'{value!r} is not a whole number') from None
    if number <= 0:
        raise argparse.ArgumentTypeError('must be a positive number')
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='careers',
                                     description='Find careers by competencies or major')
    sub = parser.add_subparsers(dest='command')

    p = sub.add_parser('competencies', help='Rank careers for three competencies')
    p.add_argument('names', nargs='+', help='Exactly three competency names')
    p.add_argument('--limit', type=positive_int, default=None)
    p.add_argument('--json', action='store_true')

    p = sub.add_parser('major', help='Careers related to a course major')
    p.add_argument('name')
    p.add_argument('--limit', type=positive_int, default=None)
    p.add_argument('--min-score', type=float, default=None)
    p.add_argument('--json', action='store_true')

    p = sub.add_parser('job', help='Detailed information for one occupation')
    p.add_argument('code', help='O*NET-SOC code, e.g. 15-1252.00')
    p.add_argument('--json', action='store_true')

    p = sub.add_parser('stats', help='Mapping coverage statistics')
    p.add_argument('--json', action='store_true')

    sub.add_parser('init-db', help='Create the careers tables in the SQL database')
    sub.add_parser('interactive', help='Interactive menu (default)')
    return parser


COMMANDS = {
    'competencies': cmd_competencies,
    'major': cmd_major,
    'job': cmd_job,
    'stats': cmd_stats,
}


def main(argv=None, source=None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.WARNING,
                        format='%(asctime)s [%(levelname)s] %(message)s')
    args = build_parser().parse_args(argv)

    if args.command == 'init-db':
        create_cli_app(create_tables=True)
        print('Database tables created')
        return 0

    if source is None:
        source = build_data_source(create_cli_app())

    handler = COMMANDS.get(args.command)
    if handler is None:
        return run_interactive(source)
    return handler(args, source)


if __name__ == '__main__':
    sys.exit(main())
