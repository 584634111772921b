# gateway/routes/pdf_chat.py
# Flask Blueprint mounted at /pdf: upload a PDF, then chat about its contents.

import json
import os
import uuid

from flask import Blueprint, Response, current_app, g, jsonify, request, stream_with_context
from werkzeug.exceptions import NotFound
from werkzeug.utils import secure_filename

from ..config import db
from ..models import ChatMessage, PdfDocument
from ..observability import guard_stream
from ..schemas import PdfChatRequest
from ..services.pdf_text import extract_pdf_text

pdf_bp = Blueprint("pdf", __name__)

HISTORY_TURNS = 6


def _load_document(document_id: str) -> PdfDocument:
    current_app.extensions["store"].require_connected()
    doc = db.session.get(PdfDocument, document_id)
    if doc is None:
        raise NotFound(description="Document not found")
    return doc


def _chat_messages(doc: PdfDocument, question: str):
    max_chars = current_app.config.get("PDF_CONTEXT_MAX_CHARS", 12000)
    msgs = [
        {
            "role": "system",
            "content": (
                "Answer questions using only the document below. "
                "If the answer is not in it, say so.\n\n"
                f"Document ({doc.filename}):\n{doc.content[:max_chars]}"
            ),
        }
    ]
    # Recent turns only, to bound prompt size
    for m in doc.messages[-HISTORY_TURNS * 2:]:
        msgs.append({"role": m.role, "content": m.content})
    msgs.append({"role": "user", "content": question})
    return msgs


def _record_turn(doc: PdfDocument, question: str, answer: str) -> None:
    db.session.add(ChatMessage(document_id=doc.id, role="user", content=question))
    db.session.add(ChatMessage(document_id=doc.id, role="assistant", content=answer))
    db.session.commit()


@pdf_bp.route("/upload", methods=["POST"])
def upload_pdf():
    """Multipart form with a single ``file`` field."""
    current_app.extensions["store"].require_connected()
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValueError("No PDF uploaded under the 'file' field")

    data = upload.read()
    text, pages = extract_pdf_text(data, upload.filename)

    stored_name = f"{uuid.uuid4().hex}-{secure_filename(upload.filename)}"
    stored_path = os.path.join(current_app.config["UPLOADS_DIR"], stored_name)
    with open(stored_path, "wb") as fh:
        fh.write(data)

    doc = PdfDocument(filename=upload.filename, stored_path=stored_path, page_count=pages, content=text)
    db.session.add(doc)
    try:
        db.session.commit()
    except Exception:
        # No record, no file
        db.session.rollback()
        os.remove(stored_path)
        raise
    current_app.logger.info(
        "pdf.uploaded", extra={"event": "pdf.uploaded", "request_id": getattr(g, "request_id", None)}
    )
    return jsonify({"documentId": doc.id, "filename": doc.filename, "pages": pages}), 201


@pdf_bp.route("/chat", methods=["POST"])
def chat():
    """
    Body: { "documentId": "...", "question": "What is chapter 2 about?" }
    """
    req = PdfChatRequest.model_validate(request.get_json(silent=True) or {})
    doc = _load_document(req.document_id)
    answer = current_app.extensions["ai_service"].complete(_chat_messages(doc, req.question))
    _record_turn(doc, req.question, answer)
    return jsonify({"documentId": doc.id, "answer": answer})


@pdf_bp.route("/chat/stream", methods=["POST"])
def chat_stream():
    """Same as /pdf/chat but streams tokens as Server-Sent Events."""
    req = PdfChatRequest.model_validate(request.get_json(silent=True) or {})
    doc = _load_document(req.document_id)
    messages = _chat_messages(doc, req.question)
    ai = current_app.extensions["ai_service"]

    def generate():
        assembled = []
        yield f"data: {json.dumps({'request_id': getattr(g, 'request_id', None)})}\n\n"
        for token in ai.stream(messages):
            assembled.append(token)
            yield f"data: {json.dumps({'token': token})}\n\n"
        _record_turn(doc, req.question, "".join(assembled))
        yield f"data: {json.dumps({'done': True})}\n\n"

    return Response(
        stream_with_context(guard_stream(generate())),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
