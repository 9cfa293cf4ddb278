import json
import logging
import httpx
import pytest
from pytest_httpx import HTTPXMock
from santo_nordeste.config import Config
from santo_nordeste.gemini import GenerationClient, GenerationError, ParseError, TransportError
from santo_nordeste.models import Difficulty, Mode

BASE = "https://generativelanguage.googleapis.com/v1beta/models"
RECIPE_URL = f"{BASE}/gemini-3-flash-preview:generateContent"
IMAGE_URL = f"{BASE}/gemini-2.5-flash-image:generateContent"
SPEECH_URL = f"{BASE}/gemini-2.5-flash-preview-tts:generateContent"

ACARAJE = {
    "title": "Acarajé",
    "description": "Bolinho de feijão frito no dendê.",
    "ingredients": ["feijão fradinho", "camarão"],
    "instructions": ["Bata o feijão", "Frite"],
    "history": "Comida de tabuleiro das baianas.",
    "cookingTime": "40 min",
    "difficulty": "Médio",
    "drinkPairings": ["Guaraná Jesus"],
}


def _text_response(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _inline_response(data: str, mime_type: str = "image/png") -> dict:
    return {"candidates": [{"content": {"parts": [
        {"text": "Aqui está."},
        {"inlineData": {"mimeType": mime_type, "data": data}},
    ]}}]}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    with GenerationClient(Config()) as c:
        yield c


def test_request_recipe_returns_validated_draft(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=_text_response(json.dumps(ACARAJE)))
    draft = client.request_recipe("Acarajé", Mode.TRADITIONAL)
    assert draft.title == "Acarajé"
    assert draft.ingredients == ["feijão fradinho", "camarão"]
    assert draft.difficulty is Difficulty.MEDIUM
    assert draft.drink_pairings == ["Guaraná Jesus"]


def test_request_recipe_sends_key_schema_and_system_prompt(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=_text_response(json.dumps(ACARAJE)))
    client.request_recipe("Acarajé", Mode.TRADITIONAL)

    request = httpx_mock.get_requests()[0]
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    assert body["generationConfig"]["responseMimeType"] == "application/json"
    schema = body["generationConfig"]["responseSchema"]
    assert set(schema["required"]) == {
        "title", "description", "ingredients", "instructions",
        "history", "cookingTime", "difficulty", "drinkPairings",
    }
    assert schema["properties"]["difficulty"]["enum"] == ["Fácil", "Médio", "Difícil"]
    assert "Nordeste" in body["systemInstruction"]["parts"][0]["text"]
    assert "Acarajé" in body["contents"][0]["parts"][0]["text"]


def test_request_recipe_pantry_mode_uses_ingredient_prompt(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=_text_response(json.dumps(ACARAJE)))
    client.request_recipe("macaxeira, charque", Mode.PANTRY)

    prompt = json.loads(httpx_mock.get_requests()[0].content)["contents"][0]["parts"][0]["text"]
    assert "macaxeira, charque" in prompt
    assert "sal, óleo e água" in prompt


def test_request_recipe_accepts_fenced_json(client, httpx_mock: HTTPXMock):
    fenced = f"```json\n{json.dumps(ACARAJE)}\n```"
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=_text_response(fenced))
    assert client.request_recipe("Acarajé").title == "Acarajé"


def test_request_recipe_invalid_json_raises_parse_error(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=_text_response("not json at all"))
    with pytest.raises(ParseError, match="parse"):
        client.request_recipe("Acarajé")


def test_request_recipe_missing_field_raises_parse_error(client, httpx_mock: HTTPXMock):
    payload = {k: v for k, v in ACARAJE.items() if k != "history"}
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=_text_response(json.dumps(payload)))
    with pytest.raises(ParseError, match="unexpected recipe format"):
        client.request_recipe("Acarajé")


def test_request_recipe_unknown_difficulty_raises_parse_error(client, httpx_mock: HTTPXMock):
    payload = {**ACARAJE, "difficulty": "Moleza"}
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=_text_response(json.dumps(payload)))
    with pytest.raises(ParseError):
        client.request_recipe("Acarajé")


def test_request_recipe_without_candidates_raises_parse_error(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json={"candidates": []})
    with pytest.raises(ParseError, match="no recipe text"):
        client.request_recipe("Acarajé")


def test_request_recipe_null_text_raises_parse_error(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json={"candidates": [{"content": {"parts": [{"text": None}]}}]})
    with pytest.raises(ParseError, match="no recipe text"):
        client.request_recipe("Acarajé")


@pytest.mark.parametrize("envelope", [{"candidates": ["oops"]}, [1, 2], {"candidates": [{"content": {"parts": ["x"]}}]}])
def test_request_recipe_malformed_envelope_raises_parse_error(client, httpx_mock: HTTPXMock, envelope):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", json=envelope)
    with pytest.raises(ParseError, match="unexpected response envelope"):
        client.request_recipe("Acarajé")


def test_request_recipe_http_error_raises_transport_error(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=RECIPE_URL, method="POST", status_code=503, text="overloaded")
    with pytest.raises(TransportError, match="503"):
        client.request_recipe("Acarajé")


def test_request_recipe_network_error_raises_transport_error(client, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ConnectError("failed"))
    with pytest.raises(TransportError, match="Could not reach"):
        client.request_recipe("Acarajé")


def test_parse_and_transport_errors_share_a_base():
    assert issubclass(ParseError, GenerationError)
    assert issubclass(TransportError, GenerationError)


def test_request_food_image_returns_data_uri(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=IMAGE_URL, method="POST", json=_inline_response("iVBORw0KGgo="))
    assert client.request_food_image("Acarajé") == "data:image/png;base64,iVBORw0KGgo="

    body = json.loads(httpx_mock.get_requests()[0].content)
    assert "Acarajé" in body["contents"][0]["parts"][0]["text"]
    assert body["generationConfig"]["imageConfig"]["aspectRatio"] == "1:1"


def test_request_food_image_without_image_returns_none(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=IMAGE_URL, method="POST", json=_text_response("Desculpe, sem imagem."))
    assert client.request_food_image("Acarajé") is None


def test_request_food_image_failure_is_logged_not_raised(client, httpx_mock: HTTPXMock, caplog):
    httpx_mock.add_response(url=IMAGE_URL, method="POST", status_code=500)
    with caplog.at_level(logging.WARNING, logger="santo_nordeste.gemini"):
        assert client.request_food_image("Acarajé") is None
    assert any("Acarajé" in msg for msg in caplog.messages)


def test_request_narration_audio_returns_base64_payload(client, httpx_mock: HTTPXMock):
    audio = {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": "audio/L16;rate=24000", "data": "AAAA"}}]}}]}
    httpx_mock.add_response(url=SPEECH_URL, method="POST", json=audio)
    assert client.request_narration_audio("Receita de Acarajé.") == "AAAA"

    body = json.loads(httpx_mock.get_requests()[0].content)
    assert body["contents"][0]["parts"][0]["text"] == "Narração da receita: Receita de Acarajé."
    assert body["generationConfig"]["responseModalities"] == ["AUDIO"]
    voice = body["generationConfig"]["speechConfig"]["voiceConfig"]["prebuiltVoiceConfig"]
    assert voice["voiceName"] == "Kore"


def test_request_narration_audio_without_audio_returns_none(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=SPEECH_URL, method="POST", json={"candidates": []})
    assert client.request_narration_audio("Receita de Acarajé.") is None


def test_request_food_image_malformed_parts_returns_none(client, httpx_mock: HTTPXMock, caplog):
    httpx_mock.add_response(url=IMAGE_URL, method="POST", json={"candidates": [{"content": {"parts": ["x"]}}]})
    with caplog.at_level(logging.WARNING, logger="santo_nordeste.gemini"):
        assert client.request_food_image("Acarajé") is None
    assert any("unexpected response envelope" in msg for msg in caplog.messages)


def test_request_narration_audio_malformed_candidates_returns_none(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=SPEECH_URL, method="POST", json={"candidates": ["oops"]})
    assert client.request_narration_audio("Receita de Acarajé.") is None


def test_request_narration_audio_network_error_returns_none(client, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ReadTimeout("slow"))
    assert client.request_narration_audio("Receita de Acarajé.") is None


def test_client_uses_injected_http_client(monkeypatch, httpx_mock: HTTPXMock):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("GEMINI_BASE_URL", "https://proxy.example.com/v1beta/")
    httpx_mock.add_response(
        url="https://proxy.example.com/v1beta/models/gemini-3-flash-preview:generateContent",
        method="POST",
        json=_text_response(json.dumps(ACARAJE)),
    )
    with httpx.Client() as http:
        client = GenerationClient(Config(), http_client=http)
        assert client.request_recipe("Acarajé").title == "Acarajé"
        client.close()
        assert not http.is_closed
