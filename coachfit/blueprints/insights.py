from flask import Blueprint, request, jsonify, g
from coachfit.app import get_db_connection, release_db_connection, jwt_required, limiter, logger
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import psycopg2

from coachfit.aggregation import aggregate_history
from coachfit.coaching_text import GeminiCoachingTextService
from coachfit.config import InsightConfig
from coachfit.history_source import fetch_workout_history
from coachfit.insights import (
    build_insight_report,
    generate_recommendations,
    summarize_activity,
    top_exercises,
)

insights_bp = Blueprint('insights', __name__)

INSIGHT_CONFIG = InsightConfig.from_env()

TRUE_VALUES = {'1', 'true', 'yes'}


class BadRequest(ValueError):
    pass


def _reference_now():
    """Current time in the caller's timezone (?tz=<IANA name>, default UTC)."""
    tz_name = request.args.get('tz')
    if not tz_name:
        return datetime.now(timezone.utc)
    try:
        return datetime.now(ZoneInfo(tz_name))
    except (ZoneInfoNotFoundError, ValueError):
        raise BadRequest(f"Unknown timezone '{tz_name}'.")


def _forbidden(user_id_str, what):
    logger.warning(f"Forbidden attempt by user {g.current_user_id} to access {what} for user {user_id_str}")
    return jsonify(error="Forbidden. You can only access your own data."), 403


def _load_history(user_id_str):
    conn = None
    try:
        conn = get_db_connection()
        return fetch_workout_history(user_id_str, conn)
    finally:
        if conn:
            release_db_connection(conn)


@insights_bp.route('/v1/users/<uuid:user_id>/insights', methods=['GET'])
@jwt_required
@limiter.limit("60 per hour")
def get_insights(user_id):
    user_id_str = str(user_id)
    if user_id_str != g.current_user_id:
        return _forbidden(user_id_str, "insights")

    try:
        reference = _reference_now()
    except BadRequest as e:
        return jsonify(error=str(e)), 400
    narrative = request.args.get('narrative', '').lower() in TRUE_VALUES

    try:
        records = _load_history(user_id_str)
    except psycopg2.Error as e:
        logger.error(f"Database error fetching workout history for user {user_id_str}: {e}", exc_info=True)
        return jsonify(error="Database error during insights fetch."), 500

    text_service = GeminiCoachingTextService() if narrative else None
    report = build_insight_report(records, reference, config=INSIGHT_CONFIG, text_service=text_service)
    return jsonify(report.to_dict()), 200


@insights_bp.route('/v1/users/<uuid:user_id>/analytics/summary', methods=['GET'])
@jwt_required
@limiter.limit("60 per hour")
def get_activity_summary(user_id):
    user_id_str = str(user_id)
    if user_id_str != g.current_user_id:
        return _forbidden(user_id_str, "activity summary")

    try:
        reference = _reference_now()
    except BadRequest as e:
        return jsonify(error=str(e)), 400

    try:
        records = _load_history(user_id_str)
    except psycopg2.Error as e:
        logger.error(f"Database error fetching workout history for user {user_id_str}: {e}", exc_info=True)
        return jsonify(error="Database error during analytics fetch."), 500

    aggregate = aggregate_history(
        records,
        reference,
        INSIGHT_CONFIG.required_history_days,
        INSIGHT_CONFIG.default_rpe,
        INSIGHT_CONFIG.bodyweight_factor,
    )
    summary = summarize_activity(aggregate, INSIGHT_CONFIG.activity_window_days)
    summary['top_exercises'] = top_exercises(aggregate.totals, INSIGHT_CONFIG.top_exercise_count)
    return jsonify(summary), 200


@insights_bp.route('/v1/users/<uuid:user_id>/recommendations', methods=['GET'])
@jwt_required
@limiter.limit("20 per hour")
def get_recommendations(user_id):
    user_id_str = str(user_id)
    if user_id_str != g.current_user_id:
        return _forbidden(user_id_str, "recommendations")

    try:
        reference = _reference_now()
    except BadRequest as e:
        return jsonify(error=str(e)), 400

    try:
        records = _load_history(user_id_str)
    except psycopg2.Error as e:
        logger.error(f"Database error fetching workout history for user {user_id_str}: {e}", exc_info=True)
        return jsonify(error="Database error during recommendations fetch."), 500

    result = generate_recommendations(
        records, reference, GeminiCoachingTextService(), config=INSIGHT_CONFIG
    )
    return jsonify(result), 200
