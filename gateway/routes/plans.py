# gateway/routes/plans.py
# Flask Blueprint mounted at /generate-plan: AI-generated study plans.

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import NotFound

from ..config import db
from ..models import StudyPlan
from ..schemas import GeneratePlanRequest

plans_bp = Blueprint("plans", __name__)

PLAN_SYSTEM_PROMPT = (
    "You are a study planner. Reply with a single JSON object of the form "
    '{"title": str, "weeks": [{"week": int, "focus": str, "tasks": [str]}]} '
    "and nothing else."
)


def _plan_messages(req: GeneratePlanRequest):
    user = (
        f"Create a {req.duration_weeks}-week study plan on '{req.topic}' "
        f"for a {req.level} learner."
    )
    if req.goals:
        user += f" Learner goals: {req.goals}"
    return [
        {"role": "system", "content": PLAN_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


@plans_bp.route("", methods=["POST"])
def generate_plan():
    """
    Body: { "topic": "Linear algebra", "level": "beginner", "durationWeeks": 4, "goals": "..." }
    """
    req = GeneratePlanRequest.model_validate(request.get_json(silent=True) or {})
    plan = current_app.extensions["ai_service"].complete_json(_plan_messages(req))
    if not isinstance(plan, dict) or not isinstance(plan.get("weeks"), list):
        raise ValueError("AI plan is missing the 'weeks' list")

    body = {"topic": req.topic, "level": req.level, "durationWeeks": req.duration_weeks, "plan": plan}

    # Handlers may run before the store connects; persistence is best effort here
    store = current_app.extensions["store"]
    if store.connected:
        record = StudyPlan(
            topic=req.topic, level=req.level, duration_weeks=req.duration_weeks, plan=plan
        )
        db.session.add(record)
        db.session.commit()
        body["id"] = record.id
    else:
        current_app.logger.warning(
            "store.skip_persist", extra={"event": "store.skip_persist", "path": request.path}
        )
    return jsonify(body), 200


@plans_bp.route("/<plan_id>", methods=["GET"])
def get_plan(plan_id: str):
    current_app.extensions["store"].require_connected()
    record = db.session.get(StudyPlan, plan_id)
    if record is None:
        raise NotFound(description="Plan not found")
    return jsonify(record.to_dict())
