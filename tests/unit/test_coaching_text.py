import json
import pytest
from unittest.mock import MagicMock, patch

from google.genai import types

from coachfit.coaching_text import GeminiCoachingTextService, build_coaching_prompt
from coachfit.constants import LLM_TIMEOUT_MS
from coachfit.errors import CollaboratorUnavailable

PAYLOAD = {"consistency": {"score": 72, "label": "moderately consistent"}, "highlights": {"totalWorkouts": 14}}


def test_prompt_embeds_payload_json():
    prompt = build_coaching_prompt(PAYLOAD)
    assert "exactly 4" in prompt
    assert json.dumps(PAYLOAD, indent=2, sort_keys=True) in prompt


def test_generate_returns_model_text():
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text="- Train legs twice a week.\n")
    service = GeminiCoachingTextService(client=client, model="test-model")

    assert service.generate(PAYLOAD) == "- Train legs twice a week."
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert '"totalWorkouts": 14' in kwargs["contents"]


def test_client_errors_become_collaborator_unavailable():
    client = MagicMock()
    client.models.generate_content.side_effect = RuntimeError("deadline exceeded")
    service = GeminiCoachingTextService(client=client)

    with pytest.raises(CollaboratorUnavailable) as exc_info:
        service.generate(PAYLOAD)
    assert isinstance(exc_info.value.cause, RuntimeError)


def test_empty_response_is_unavailable():
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text="   ")
    with pytest.raises(CollaboratorUnavailable):
        GeminiCoachingTextService(client=client).generate(PAYLOAD)


@patch("coachfit.coaching_text.config.get_llm_api_key", return_value=None)
def test_missing_api_key_disables_service(mock_key):
    service = GeminiCoachingTextService()
    assert service.available is False
    with pytest.raises(CollaboratorUnavailable):
        service.generate(PAYLOAD)


@patch("coachfit.coaching_text.genai.Client")
def test_client_built_from_api_key_with_timeout(mock_client_cls):
    service = GeminiCoachingTextService(api_key="abc", timeout_ms=1500)
    mock_client_cls.assert_called_once_with(api_key="abc", http_options=types.HttpOptions(timeout=1500))
    assert service.available is True


@patch("coachfit.coaching_text.genai.Client", side_effect=ValueError("bad key"))
def test_client_init_failure_disables_service(mock_client_cls):
    service = GeminiCoachingTextService(api_key="abc")
    assert service.available is False


@patch.dict("os.environ", {"COACHFIT_LLM_TIMEOUT_MS": "4000"})
@patch("coachfit.coaching_text.genai.Client")
def test_timeout_read_from_environment(mock_client_cls):
    GeminiCoachingTextService(api_key="abc")
    assert mock_client_cls.call_args.kwargs["http_options"].timeout == 4000


@patch.dict("os.environ", {"COACHFIT_LLM_TIMEOUT_MS": "soon"})
def test_invalid_timeout_falls_back_to_default():
    service = GeminiCoachingTextService(client=MagicMock())
    assert service.timeout_ms == LLM_TIMEOUT_MS


def test_request_timeout_becomes_collaborator_unavailable():
    client = MagicMock()
    client.models.generate_content.side_effect = TimeoutError("read timed out")
    service = GeminiCoachingTextService(client=client, timeout_ms=10)

    with pytest.raises(CollaboratorUnavailable) as exc_info:
        service.generate(PAYLOAD)
    assert isinstance(exc_info.value.cause, TimeoutError)
