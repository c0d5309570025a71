"""
Write the OpenAPI document to interfaces/openapi.json for the frontend client.

    python -m vivaform_api.api.generate_openapi
"""

import json
from pathlib import Path

from vivaform_api.api.main import app

OUTPUT_PATH = Path("interfaces") / "openapi.json"

# The webhook route reads the raw body, so its schema cannot be inferred
STRIPE_WEBHOOK_NOTE = {
    "path": "/api/v1/webhooks/stripe",
    "summary": "Stripe events (checkout.session.completed, customer.subscription.*, invoice.payment_*)",
    "headers": ["Stripe-Signature"],
    "body": "Raw JSON payload exactly as sent by Stripe",
}


def write_openapi(path: Path = OUTPUT_PATH) -> Path:
    schema = app.openapi()
    schema["x-webhooks"] = [STRIPE_WEBHOOK_NOTE]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(schema, indent=2))
    return path


if __name__ == "__main__":
    print(f"OpenAPI schema written to {write_openapi()}")
