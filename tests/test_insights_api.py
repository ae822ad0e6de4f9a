import pytest
import uuid
import datetime
from unittest.mock import patch, MagicMock

import jwt
import psycopg2

from coachfit.constants import EMPTY_HISTORY_RECOMMENDATION
from coachfit.errors import CollaboratorUnavailable

# --- Helper Functions ---

def generate_jwt_token(user_id, secret_key="test-secret-key", expires_in=datetime.timedelta(hours=1)):
    payload = {
        'user_id': str(user_id),
        'exp': datetime.datetime.now(datetime.timezone.utc) + expires_in
    }
    return jwt.encode(payload, secret_key, algorithm="HS256")


def auth_headers(user_id):
    return {'Authorization': f'Bearer {generate_jwt_token(user_id)}'}


# --- Mock Data ---
MOCK_USER_ID = str(uuid.uuid4())
MOCK_OTHER_USER_ID = str(uuid.uuid4())
BENCH_ID = uuid.uuid4()
SQUAT_ID = uuid.uuid4()


def history_rows():
    """Two recent workouts: bench twice, squat once."""
    now = datetime.datetime.now(datetime.timezone.utc)
    w1, w2 = uuid.uuid4(), uuid.uuid4()
    rows = []
    for workout_id, days_ago, items in ((w1, 3, [(BENCH_ID, "Bench Press", "Chest")]),
                                        (w2, 1, [(BENCH_ID, "Bench Press", "Chest"), (SQUAT_ID, "Back Squat", "Legs")])):
        for index, (ex_id, name, group) in enumerate(items):
            for _ in range(3):
                rows.append({
                    'workout_id': workout_id,
                    'performed_at': now - datetime.timedelta(days=days_ago),
                    'notes': None,
                    'item_index': index,
                    'exercise_id': ex_id,
                    'item_muscle_group': None,
                    'reps': 8,
                    'weight': 60,
                    'rpe': 8,
                    'exercise_name': name,
                    'exercise_muscle_group': group,
                })
    return rows


def mock_db(mock_get_db_conn, rows):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_db_conn.return_value = mock_conn
    mock_conn.cursor.return_value.__enter__.return_value = mock_cursor
    mock_cursor.fetchall.return_value = rows
    return mock_conn, mock_cursor


# --- Authentication / authorization ---

def test_insights_requires_token(client):
    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights')
    assert response.status_code == 401
    assert "missing" in response.get_json()['message']


def test_insights_rejects_expired_token(client):
    token = generate_jwt_token(MOCK_USER_ID, expires_in=datetime.timedelta(seconds=-10))
    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights', headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == 401
    assert "expired" in response.get_json()['message']


def test_insights_rejects_token_with_wrong_secret(client):
    token = generate_jwt_token(MOCK_USER_ID, secret_key="some-other-secret")
    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights', headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == 401


@patch('coachfit.blueprints.insights.get_db_connection')
def test_insights_forbidden_for_other_user(mock_get_db_conn, client):
    response = client.get(f'/v1/users/{MOCK_OTHER_USER_ID}/insights', headers=auth_headers(MOCK_USER_ID))
    assert response.status_code == 403
    assert "Forbidden" in response.get_json()['error']
    mock_get_db_conn.assert_not_called()


# --- Insights endpoint ---

@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_insights_empty_history(mock_get_db_conn, mock_release, client):
    mock_conn, _ = mock_db(mock_get_db_conn, [])

    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 200
    data = response.get_json()
    assert data['consistency']['label'] == "insufficient data"
    assert data['recovery']['status'] == "not enough recent training data"
    assert data['muscle_balance']['status'] == "insufficient data"
    assert data['trend']['direction'] == "stable"
    assert data['totals']['total_workouts'] == 0
    assert data['coaching_text'] is None
    mock_release.assert_called_once_with(mock_conn)


@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_insights_with_history(mock_get_db_conn, mock_release, client):
    _, mock_cursor = mock_db(mock_get_db_conn, history_rows())

    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights?tz=Europe/Berlin', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 200
    data = response.get_json()
    assert data['totals']['total_workouts'] == 2
    assert data['totals']['total_sets'] == 9
    assert data['top_exercises'][0] == {'exercise_id': str(BENCH_ID), 'name': "Bench Press", 'count': 2}
    volumes = {v['category']: v['set_count'] for v in data['muscle_balance']['volumes']}
    assert volumes['Upper Body'] == 6
    assert volumes['Lower Body'] == 3
    assert data['muscle_balance']['status'] == "lower body lagging"
    assert len(data['training_load']['weekly']) == 8
    assert mock_cursor.execute.call_args.args[1] == (MOCK_USER_ID,)


@patch('coachfit.blueprints.insights.get_db_connection')
def test_insights_unknown_timezone(mock_get_db_conn, client):
    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights?tz=Mars/Olympus', headers=auth_headers(MOCK_USER_ID))
    assert response.status_code == 400
    assert "Mars/Olympus" in response.get_json()['error']
    mock_get_db_conn.assert_not_called()


@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_insights_db_error(mock_get_db_conn, mock_release, client):
    mock_conn, mock_cursor = mock_db(mock_get_db_conn, [])
    mock_cursor.execute.side_effect = psycopg2.Error("Simulated DB error")

    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 500
    assert "Database error" in response.get_json()['error']
    mock_release.assert_called_once_with(mock_conn)


@patch('coachfit.blueprints.insights.GeminiCoachingTextService')
@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_insights_narrative_survives_unavailable_service(mock_get_db_conn, mock_release, mock_service_cls, client):
    mock_db(mock_get_db_conn, history_rows())
    mock_service_cls.return_value.generate.side_effect = CollaboratorUnavailable("timeout")

    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights?narrative=1', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 200
    data = response.get_json()
    assert data['coaching_text'] is None
    assert data['totals']['total_workouts'] == 2
    mock_service_cls.return_value.generate.assert_called_once()


@patch('coachfit.blueprints.insights.GeminiCoachingTextService')
@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_insights_without_narrative_skips_service(mock_get_db_conn, mock_release, mock_service_cls, client):
    mock_db(mock_get_db_conn, history_rows())
    response = client.get(f'/v1/users/{MOCK_USER_ID}/insights', headers=auth_headers(MOCK_USER_ID))
    assert response.status_code == 200
    mock_service_cls.assert_not_called()


# --- Activity summary endpoint ---

@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_activity_summary(mock_get_db_conn, mock_release, client):
    mock_db(mock_get_db_conn, history_rows())

    response = client.get(f'/v1/users/{MOCK_USER_ID}/analytics/summary', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 200
    data = response.get_json()
    assert data['total_workouts'] == 2
    assert data['workouts_in_window'] == 2
    assert data['sets_in_window'] == 9
    assert data['average_sets_per_workout'] == pytest.approx(4.5)
    assert [e['name'] for e in data['top_exercises']] == ["Bench Press", "Back Squat"]


def test_activity_summary_forbidden(client):
    response = client.get(f'/v1/users/{MOCK_OTHER_USER_ID}/analytics/summary', headers=auth_headers(MOCK_USER_ID))
    assert response.status_code == 403


# --- Recommendations endpoint ---

@patch('coachfit.blueprints.insights.GeminiCoachingTextService')
@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_recommendations_empty_history_fallback(mock_get_db_conn, mock_release, mock_service_cls, client):
    mock_db(mock_get_db_conn, [])

    response = client.get(f'/v1/users/{MOCK_USER_ID}/recommendations', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 200
    data = response.get_json()
    assert data['recommendations'] == EMPTY_HISTORY_RECOMMENDATION
    assert data['source'] == "fallback"
    mock_service_cls.return_value.generate.assert_not_called()


@patch('coachfit.blueprints.insights.GeminiCoachingTextService')
@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_recommendations_from_coach(mock_get_db_conn, mock_release, mock_service_cls, client):
    mock_db(mock_get_db_conn, history_rows())
    mock_service_cls.return_value.generate.return_value = "- Add a leg day."

    response = client.get(f'/v1/users/{MOCK_USER_ID}/recommendations', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 200
    data = response.get_json()
    assert data['recommendations'] == "- Add a leg day."
    assert data['source'] == "coach"
    assert data['report']['totals']['total_workouts'] == 2
    payload = mock_service_cls.return_value.generate.call_args.args[0]
    assert payload['highlights']['totalWorkouts'] == 2


@patch('coachfit.blueprints.insights.GeminiCoachingTextService')
@patch('coachfit.blueprints.insights.release_db_connection')
@patch('coachfit.blueprints.insights.get_db_connection')
def test_recommendations_when_coach_unavailable(mock_get_db_conn, mock_release, mock_service_cls, client):
    mock_db(mock_get_db_conn, history_rows())
    mock_service_cls.return_value.generate.side_effect = CollaboratorUnavailable("no api key")

    response = client.get(f'/v1/users/{MOCK_USER_ID}/recommendations', headers=auth_headers(MOCK_USER_ID))

    assert response.status_code == 200
    data = response.get_json()
    assert data['recommendations'] is None
    assert data['source'] == "unavailable"
