import logging
import os
from datetime import datetime, timezone

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.middleware.proxy_fix import ProxyFix

from auth import current_user, is_admin_request, require_industry, require_user
from config import load_settings
from errors import NotFound, Unauthorized
from insight_service import InsightService
from job_refresh import JobRefresher
from job_store import JobStore
from llm_service import GenerationGateway
from models import db
from tasks import register_commands

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')


def create_app(settings=None, gateway=None):
    """Build the Flask app. ``settings`` defaults to the environment (+ .env)."""
    settings = (settings or load_settings()).validate()

    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s [%(levelname)s] %(message)s')

    app = Flask(__name__)
    # Trust the reverse proxy's headers so url_for() generates https:// URLs
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)
    app.secret_key = settings.secret_key or os.urandom(24)
    app.config['SQLALCHEMY_DATABASE_URI'] = settings.database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['ADMIN_TOKEN'] = settings.admin_token

    db.init_app(app)
    with app.app_context():
        db.create_all()

    store = JobStore()
    gateway = gateway or GenerationGateway(settings)
    app.extensions['job_store'] = store
    app.extensions['job_refresher'] = JobRefresher(store, gateway, settings)
    app.extensions['insight_service'] = InsightService(store, gateway, settings)

    app.register_blueprint(api)
    register_commands(app)
    logger.info('App ready: %d candidate models, database %s',
                len(settings.models), settings.database_url.split('://')[0])
    return app


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@api.errorhandler(Unauthorized)
def handle_unauthorized(e):
    return jsonify({'error': str(e)}), 401


@api.errorhandler(NotFound)
def handle_not_found(e):
    return jsonify({'error': str(e)}), 404


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------

@api.route('/job-opportunities')
def job_opportunities():
    user = require_user()
    override = request.args.get('industry', '').strip()
    if override and not is_admin_request():
        return jsonify({'error': 'Choosing another industry requires an admin token'}), 403
    industry = override or require_industry(user)
    result = current_app.extensions['job_refresher'].refresh_if_stale(industry)
    return jsonify({
        'industry': industry,
        'jobs': [job.to_dict() for job in result.jobs],
    })


@api.route('/industry-insights')
def industry_insights():
    insight = current_app.extensions['insight_service'].get_industry_insights(current_user())
    return jsonify({'insight': insight.to_dict() if insight else None})


# ---------------------------------------------------------------------------
# Admin endpoints — protected by ADMIN_TOKEN
# ---------------------------------------------------------------------------

@api.route('/manual-update', methods=['POST'])
def manual_update():
    if not is_admin_request():
        return jsonify({'error': 'Unauthorized'}), 401

    logger.info('Manual job opportunities update triggered...')
    refresher = current_app.extensions['job_refresher']
    try:
        if not refresher.store.list_all_industries():
            return jsonify({
                'error': 'No industries found. Please complete onboarding first.',
            }), 400
        results = refresher.refresh_all()
    except Exception as e:
        logger.error('Error in manual job update: %s', e, exc_info=True)
        return jsonify({
            'error': 'Failed to update job opportunities',
            'details': str(e),
        }), 500

    logger.info('Job opportunities update completed!')
    return jsonify({
        'message': 'Job opportunities updated successfully',
        'results': results,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5050))
    create_app().run(debug=True, port=port)
