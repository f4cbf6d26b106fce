import logging
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
load_dotenv()  # Load .env file (SUPABASE_URL, DATABASE_URL, etc.)

from flask import (Flask, flash, jsonify, redirect, render_template, request,
                   url_for)
from werkzeug.middleware.proxy_fix import ProxyFix

from catalog import InvalidSelectionError, select_catalog
from competency_service import check_competency_mappings_exist, get_jobs_by_competencies
from data_source import DataSourceError, build_data_source
from major_service import check_major_mappings_exist, get_jobs_by_major
from models import init_db
from occupation_service import get_detailed_job_info

logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s [%(levelname)s] %(message)s')
logger = logging.getLogger(__name__)

APP_NAME = 'O*NET Careers Explorer'
APP_DESCRIPTION = 'Discover Your Perfect Career Path'

app = Flask(__name__)
# Trust the hosting proxy's headers so url_for() generates https:// URLs
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)
app.secret_key = os.environ.get('SECRET_KEY', os.urandom(24))
app.config['RESULTS_LIMIT'] = int(os.environ.get('RESULTS_LIMIT', '0')) or None

# ---------------------------------------------------------------------------
# Data source: Supabase when configured, else DATABASE_URL / local SQLite
# ---------------------------------------------------------------------------
init_db(app)
data_source = build_data_source(app)

SEARCH_FAILED = ('We could not reach the careers database right now. '
                 'Please try again in a few minutes.')
NO_MATCHES = 'No matching careers found. Try a different selection.'


def current_catalog():
    return select_catalog(data_source.ping())


@app.context_processor
def inject_globals():
    return {'app_name': APP_NAME, 'app_description': APP_DESCRIPTION}


def _parse_limit(value):
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return None
    return limit if limit > 0 else None


def _json_payload() -> dict:
    """The request body as a JSON object; arrays, scalars and bad JSON read as {}."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _parse_score(value):
    if value in (None, ''):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidSelectionError('Minimum score must be a number')


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@app.route('/')
def index():
    catalog = current_catalog()
    return render_template('index.html', title='Home', catalog=catalog)


@app.route('/competencies', methods=['GET', 'POST'])
def competencies():
    catalog = current_catalog()
    if request.method == 'GET':
        return render_template('competencies.html', title='Find Careers by Competencies',
                               catalog=catalog, selected=[])

    selected = request.form.getlist('competencies')
    try:
        selected = catalog.validate_competencies(selected)
    except InvalidSelectionError as e:
        flash(str(e), 'error')
        return render_template('competencies.html', title='Find Careers by Competencies',
                               catalog=catalog, selected=selected), 400

    try:
        jobs = get_jobs_by_competencies(data_source, selected,
                                        limit=app.config['RESULTS_LIMIT'])
    except DataSourceError as e:
        logger.error('Competency search failed: %s', e)
        flash(SEARCH_FAILED, 'error')
        return redirect(url_for('competencies'))

    if not jobs:
        flash(NO_MATCHES, 'warning')
    return render_template('results.html', title='Careers by Competencies',
                           heading=f'Careers matching: {", ".join(selected)}',
                           jobs=jobs, back_url=url_for('competencies'))


@app.route('/majors', methods=['GET', 'POST'])
def majors():
    catalog = current_catalog()
    if request.method == 'GET':
        return render_template('majors.html', title='Find Careers by Major',
                               catalog=catalog, selected=None)

    try:
        major = catalog.validate_major(request.form.get('major'))
        min_score = _parse_score(request.form.get('min_score'))
    except InvalidSelectionError as e:
        flash(str(e), 'error')
        return render_template('majors.html', title='Find Careers by Major',
                               catalog=catalog, selected=request.form.get('major')), 400

    try:
        jobs = get_jobs_by_major(data_source, major, limit=app.config['RESULTS_LIMIT'],
                                 min_score=min_score)
    except DataSourceError as e:
        logger.error('Major search failed: %s', e)
        flash(SEARCH_FAILED, 'error')
        return redirect(url_for('majors'))

    if not jobs:
        flash(NO_MATCHES, 'warning')
    return render_template('results.html', title='Careers by Major',
                           heading=f'Careers related to {major}',
                           jobs=jobs, back_url=url_for('majors'))


@app.route('/job/<path:onetsoc_code>')
def job_details(onetsoc_code):
    try:
        job = get_detailed_job_info(data_source, onetsoc_code)
    except DataSourceError as e:
        logger.error('Error loading job details for %s: %s', onetsoc_code, e)
        return render_template('error.html', title='Error',
                               message='Failed to load job details'), 503

    if not job:
        return render_template('error.html', title='Job Not Found',
                               message='The requested job could not be found'), 404
    return render_template('job_details.html', title=f'Job Details - {job["title"]}', job=job)


@app.route('/about')
def about():
    return render_template('about.html', title=f'About {APP_NAME}')


@app.route('/contact')
def contact():
    return render_template('contact.html', title='Contact Us')


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------

@app.route('/api/search/competencies', methods=['POST'])
def api_search_competencies():
    payload = _json_payload()
    try:
        selected = current_catalog().validate_competencies(payload.get('competencies'))
    except InvalidSelectionError as e:
        return jsonify({'error': str(e)}), 400

    limit = _parse_limit(payload.get('limit')) or app.config['RESULTS_LIMIT']
    try:
        jobs = get_jobs_by_competencies(data_source, selected, limit=limit)
    except DataSourceError as e:
        logger.error('Error in competency search API: %s', e)
        return jsonify({'error': 'Failed to search careers by competencies'}), 503

    return jsonify({'success': True, 'jobs': jobs, 'count': len(jobs)})


@app.route('/api/search/majors', methods=['POST'])
def api_search_majors():
    payload = _json_payload()
    try:
        major = current_catalog().validate_major(payload.get('major'))
        min_score = _parse_score(payload.get('min_score'))
    except InvalidSelectionError as e:
        return jsonify({'error': str(e)}), 400

    limit = _parse_limit(payload.get('limit')) or app.config['RESULTS_LIMIT']
    try:
        jobs = get_jobs_by_major(data_source, major, limit=limit, min_score=min_score)
    except DataSourceError as e:
        logger.error('Error in major search API: %s', e)
        return jsonify({'error': 'Failed to search careers by major'}), 503

    return jsonify({'success': True, 'jobs': jobs, 'count': len(jobs)})


@app.route('/api/job/<path:onetsoc_code>')
def api_job_details(onetsoc_code):
    try:
        job = get_detailed_job_info(data_source, onetsoc_code)
    except DataSourceError as e:
        logger.error('Error in job details API: %s', e)
        return jsonify({'error': 'Failed to load job details'}), 503

    if not job:
        return jsonify({'error': 'Job not found'}), 404
    return jsonify({'success': True, 'job': job})


@app.route('/api/catalog')
def api_catalog():
    return jsonify(current_catalog().to_dict())


@app.route('/api/health')
def api_health():
    connected = data_source.ping()
    return jsonify({
        'status': 'ok',
        'database': 'connected' if connected else 'disconnected',
        'data_source': data_source.name,
        'competency_mappings': connected and check_competency_mappings_exist(data_source),
        'major_mappings': connected and check_major_mappings_exist(data_source),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


# ---------------------------------------------------------------------------
# Error pages
# ---------------------------------------------------------------------------

@app.errorhandler(404)
def page_not_found(e):
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Not found'}), 404
    return render_template('error.html', title='Page Not Found',
                           message='The requested page could not be found'), 404


@app.errorhandler(500)
def server_error(e):
    logger.error('Unhandled error: %s', e, exc_info=True)
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Internal server error'}), 500
    return render_template('error.html', title='Server Error',
                           message='An unexpected error occurred'), 500


def log_startup_status():
    """Report database and mapping status; the server starts either way."""
    if not data_source.ping():
        logger.warning('Database connection failed, starting in demo mode')
        return False
    ready = (check_competency_mappings_exist(data_source)
             and check_major_mappings_exist(data_source))
    if not ready:
        logger.warning('Mapping tables are empty, searches will return no results')
    return ready


if __name__ == '__main__':
    log_startup_status()
    port = int(os.environ.get('PORT', 3000))
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1', port=port)
