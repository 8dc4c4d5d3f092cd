import httpx
import pytest
from fastapi.testclient import TestClient

from dealerpost.main import create_app
from dealerpost.errors import GENERIC_FAILURE_MESSAGE

from conftest import GENERATED_URL, FakeGateway, header_only_png_data_url

FORM_ORIGIN = "http://localhost:5173"


def client_for(settings, gateway):
    return TestClient(create_app(settings, transport=gateway.transport))


@pytest.fixture
def post_body(template_ref):
    return {
        "dealershipName": "Arjun Motors",
        "numberOfVehicles": 1,
        "vehicleNames": ["Honda City"],
        "vehicleImages": [""],
        "dealershipTemplate": template_ref,
        "specialFeature": "Free insurance",
        "backgroundTheme": "sunset",
        "customKeywords": "",
    }


def test_generate_post_success(settings, post_body):
    gateway = FakeGateway()
    response = client_for(settings, gateway).post("/generate-post", json=post_body)

    assert response.status_code == 200
    body = response.json()
    assert body["imageUrl"] == GENERATED_URL
    assert "Honda City" in body["prompt"]
    assert "Free insurance" in body["prompt"]

    content = gateway.last_payload["messages"][0]["content"]
    assert content[0]["image_url"]["url"] == post_body["dealershipTemplate"]
    assert content[1] == {"type": "text", "text": body["prompt"]}


@pytest.mark.parametrize(
    "upstream_status, expected_status, expected_error",
    [
        (429, 429, "Rate limit exceeded. Please try again in a moment."),
        (402, 402, "AI credits exhausted. Please add credits to your workspace."),
        (500, 500, GENERIC_FAILURE_MESSAGE),
        (400, 500, GENERIC_FAILURE_MESSAGE),
    ],
)
def test_upstream_status_translation(settings, post_body, upstream_status, expected_status, expected_error):
    gateway = FakeGateway(status_code=upstream_status, json_body={"error": "upstream"})
    response = client_for(settings, gateway).post("/generate-post", json=post_body)

    assert response.status_code == expected_status
    assert response.json() == {"error": expected_error}


def test_no_image_is_reported_generically(settings, post_body):
    gateway = FakeGateway(json_body={"choices": [{"message": {"content": "no"}}]})
    response = client_for(settings, gateway).post("/generate-post", json=post_body)

    assert response.status_code == 500
    assert response.json() == {"error": GENERIC_FAILURE_MESSAGE}


def test_invalid_request_never_reaches_gateway(settings, post_body):
    gateway = FakeGateway()
    post_body["vehicleNames"] = ["", "  "]
    response = client_for(settings, gateway).post("/generate-post", json=post_body)

    assert response.status_code == 400
    assert response.json() == {"error": "Please enter at least one vehicle name"}
    assert gateway.requests == []


def test_required_template_missing(settings, post_body):
    gateway = FakeGateway()
    post_body.pop("dealershipTemplate")
    client = client_for(settings.model_copy(update={"require_template": True}), gateway)
    response = client.post("/generate-post", json=post_body)

    assert response.status_code == 400
    assert "template" in response.json()["error"]
    assert gateway.requests == []


def test_missing_credential(settings, post_body):
    gateway = FakeGateway()
    client = client_for(settings.model_copy(update={"api_key": None}), gateway)
    response = client.post("/generate-post", json=post_body)

    assert response.status_code == 500
    assert response.json() == {"error": "Image generation is not configured on the server."}
    assert gateway.requests == []


def test_refine_round_trip(settings):
    gateway = FakeGateway()
    previous = "https://images.example.com/generated/42.png"
    response = client_for(settings, gateway).post(
        "/generate-post",
        json={"mode": "refine", "currentImage": previous, "refinementInstruction": "make the car bigger"},
    )

    assert response.status_code == 200
    assert "make the car bigger" in response.json()["prompt"]
    content = gateway.last_payload["messages"][0]["content"]
    assert [part["image_url"]["url"] for part in content if part["type"] == "image_url"] == [previous]


@pytest.mark.parametrize("raw", ["not json", "[1, 2, 3]"])
def test_malformed_body(settings, raw):
    gateway = FakeGateway()
    response = client_for(settings, gateway).post(
        "/generate-post", content=raw, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert "error" in response.json()
    assert gateway.requests == []


def test_cors_preflight(settings):
    response = client_for(settings, FakeGateway()).options(
        "/generate-post",
        headers={
            "Origin": FORM_ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type, authorization",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in (FORM_ORIGIN, "*")


def test_bare_options_is_a_no_op(settings):
    response = client_for(settings, FakeGateway()).options("/generate-post")
    assert response.status_code == 204
    assert response.content == b""


def test_cors_headers_on_post(settings, post_body):
    response = client_for(settings, FakeGateway()).post(
        "/generate-post", json=post_body, headers={"Origin": FORM_ORIGIN}
    )
    assert "access-control-allow-origin" in response.headers


def test_themes(settings):
    response = client_for(settings, FakeGateway()).get("/themes")

    assert response.status_code == 200
    themes = response.json()
    assert len(themes) == 8
    assert themes[0] == {"value": "showroom", "label": "In Showroom"}
    assert {"value": "ship", "label": "On a Ship"} in themes


def test_health(settings):
    response = client_for(settings, FakeGateway()).get("/")
    assert response.status_code == 200


def test_oversized_template_falls_back_to_generic_size_wording(settings, post_body):
    gateway = FakeGateway()
    post_body["dealershipTemplate"] = header_only_png_data_url(20000, 20000)
    response = client_for(settings, gateway).post("/generate-post", json=post_body)

    assert response.status_code == 200
    assert "exactly match the template's dimensions and aspect ratio" in response.json()["prompt"]


def test_unexpected_failure_returns_json_error(settings, post_body):
    def explode(request):
        raise RuntimeError("gateway client bug")

    app = create_app(settings, transport=httpx.MockTransport(explode))
    response = TestClient(app, raise_server_exceptions=False).post("/generate-post", json=post_body)

    assert response.status_code == 500
    assert response.json() == {"error": GENERIC_FAILURE_MESSAGE}
