# gateway/routes/curation.py
# Flask Blueprint mounted at /curate-resources: AI-curated learning resources.

from flask import Blueprint, current_app, jsonify, request

from ..config import db
from ..models import ResourceCollection
from ..schemas import CurateResourcesRequest

curation_bp = Blueprint("curation", __name__)

CURATION_SYSTEM_PROMPT = (
    "You recommend learning resources. Reply with a JSON array of objects "
    '{"title": str, "url": str, "type": str, "description": str} and nothing else.'
)


@curation_bp.route("", methods=["POST"])
def curate_resources():
    """
    Body: { "topic": "Rust ownership", "level": "intermediate", "limit": 8 }
    """
    req = CurateResourcesRequest.model_validate(request.get_json(silent=True) or {})
    messages = [
        {"role": "system", "content": CURATION_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Suggest up to {req.limit} resources on '{req.topic}' for a {req.level} learner.",
        },
    ]
    resources = current_app.extensions["ai_service"].complete_json(messages)
    if not isinstance(resources, list):
        raise ValueError("AI resources reply is not a list")
    resources = [r for r in resources if isinstance(r, dict) and r.get("title")][: req.limit]

    body = {"topic": req.topic, "resources": resources}
    store = current_app.extensions["store"]
    if store.connected:
        record = ResourceCollection(topic=req.topic, resources=resources)
        db.session.add(record)
        db.session.commit()
        body["id"] = record.id
    return jsonify(body)
