import os
import re
import json
import base64
import logging
from flask import Flask, Response, request, jsonify
from flask_cors import CORS
import requests

# ----------------------
# Configuration
# ----------------------
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "*")
PORT = int(os.getenv("PORT", "8080"))

GEMINI_MODEL = "gemini-2.5-flash-preview-05-20"
GEMINI_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    f"{GEMINI_MODEL}:generateContent"
)

# Shorter credentials are only masked in the key= query value
MIN_SECRET_LENGTH = 8
KEY_PARAM = re.compile(r"([?&]key=)[^&\s'\"]+")

# Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("gemini-proxy")

# ----------------------
# App Setup
# ----------------------
app = Flask(__name__)
CORS(app, origins=[FRONTEND_ORIGIN])

# ----------------------
# Helpers
# ----------------------
def json_response(status_code: int, payload) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }

def redact(text: str, secret: str | None) -> str:
    """Mask the credential wherever it shows up (request URLs carry it)."""
    text = KEY_PARAM.sub(r"\1***", text)
    if secret and len(secret) >= MIN_SECRET_LENGTH:
        text = text.replace(secret, "***")
    return text

def read_body(event: dict):
    body = event.get("body")
    if body is not None and event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return body

# ----------------------
# Proxy
# ----------------------
def proxy_request(event: dict, api_key: str | None, session: requests.Session | None = None) -> dict:
    """Forward the prompt in ``event`` to Gemini and map the outcome to a response.

    Never raises. Any failure not handled explicitly becomes a 500 whose
    body carries the exception text, with the credential masked out.
    """
    if event.get("httpMethod") != "POST":
        return {"statusCode": 405, "body": "Method Not Allowed"}

    try:
        data = json.loads(read_body(event))
        if data is None:
            raise TypeError("Cannot read property 'prompt' of null")
        prompt = data.get("prompt") if isinstance(data, dict) else None

        if not prompt:
            return json_response(400, {"error": "Prompt is required."})

        if not api_key:
            logger.error("GEMINI_API_KEY environment variable not set.")
            return json_response(500, {"error": "API key not configured on the server."})

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        post = session.post if session is not None else requests.post
        resp = post(
            GEMINI_API_URL,
            params={"key": api_key},
            json=payload,
            headers={"Content-Type": "application/json"},
        )

        if not 200 <= resp.status_code < 300:
            logger.error("Gemini API Error: %s", redact(resp.text, api_key))
            return json_response(
                resp.status_code,
                {"error": f"Gemini API returned an error: {resp.reason}"},
            )

        return json_response(200, resp.json())
    except Exception as e:
        message = redact(str(e), api_key)
        logger.error("Proxy Error: %s: %s", type(e).__name__, message)
        return json_response(500, {"error": message})

def handler(event, context=None):
    """Serverless entrypoint; the credential is read on every invocation."""
    return proxy_request(event, os.environ.get("GEMINI_API_KEY"))

# ----------------------
# Endpoints
# ----------------------
@app.errorhandler(405)
def method_not_allowed(e):
    return Response("Method Not Allowed", status=405, mimetype="text/plain")

@app.route("/", methods=["GET"])
def health_check():
    return jsonify({"status": "proxy-running"}), 200

@app.route("/gemini-proxy", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def gemini_proxy():
    event = {
        "httpMethod": request.method,
        "body": request.get_data(as_text=True),
    }
    result = handler(event)

    headers = dict(result.get("headers") or {})
    mimetype = None if "Content-Type" in headers else "text/plain"
    return Response(
        result["body"],
        status=result["statusCode"],
        headers=headers,
        mimetype=mimetype,
    )

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=PORT)
