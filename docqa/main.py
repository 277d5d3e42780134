"""Main Quart application for the document Q&A service."""
import asyncio
import logging
import uuid
from pathlib import Path
from typing import AsyncIterator, List, Optional

import structlog
from quart import Quart, Response, jsonify, render_template, request
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
from werkzeug.utils import secure_filename

from docqa import config
from docqa.errors import DocQAError, NotFoundError, UpstreamError, ValidationError
from docqa.export import ReportItem, build_report
from docqa.rag.pipeline import Upload
from docqa.schemas import ExportHistoryRequest, ExportQueryRequest, QueryRequest, parse_body
from docqa.state import EXTENSION_KEY, ServiceState, get_state

# Configure structured logging
logging.basicConfig(format="%(message)s", level=config.LOG_LEVEL)
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

STREAM_CHUNK_SIZE = 64 * 1024


def _collect_uploads(files) -> List[FileStorage]:
    """All uploaded files, whatever form field they came in."""
    return [f for _, f in files.items(multi=True) if f and f.filename]


def _validate_uploads(uploads: List[FileStorage]) -> List[bytes]:
    """Check count, type and size of every file before any is written.

    Returns:
        The raw bytes of each file, in order

    Raises:
        ValidationError: On the first violated limit
    """
    if not uploads:
        raise ValidationError("No file uploaded")

    if len(uploads) > config.MAX_UPLOAD_FILES:
        raise ValidationError(
            f"Too many files: at most {config.MAX_UPLOAD_FILES} per upload"
        )

    contents = []
    for upload in uploads:
        suffix = Path(upload.filename).suffix.lower()
        if suffix not in config.ALLOWED_EXTENSIONS:
            allowed = ", ".join(sorted(config.ALLOWED_EXTENSIONS))
            raise ValidationError(
                f"Unsupported file type for {upload.filename} (allowed: {allowed})"
            )

        data = upload.read()
        if len(data) > config.MAX_FILE_SIZE:
            raise ValidationError(
                f"File {upload.filename} exceeds the "
                f"{config.MAX_FILE_SIZE // (1024 * 1024)}MB limit"
            )
        if not data:
            raise ValidationError(f"File {upload.filename} is empty")
        contents.append(data)

    return contents


def _stored_name(filename: str) -> str:
    suffix = Path(filename).suffix.lower()
    safe = secure_filename(filename) or f"upload{suffix}"
    return f"{uuid.uuid4().hex[:12]}-{safe}"


async def _stream_file(path: Path, on_close) -> AsyncIterator[bytes]:
    """Yield a file's bytes, then run the on_close callback.

    Disk reads run in a worker thread.
    """
    try:
        f = await asyncio.to_thread(open, path, "rb")
        try:
            while True:
                block = await asyncio.to_thread(f.read, STREAM_CHUNK_SIZE)
                if not block:
                    break
                yield block
        finally:
            f.close()
    finally:
        await on_close()


def create_app(state: Optional[ServiceState] = None) -> Quart:
    """Build the Quart app and its service state.

    Args:
        state: Pre-built service state (tests pass one with a fake LLM client)
    """
    app = Quart(
        __name__,
        template_folder=str(config.TEMPLATE_DIR),
        static_folder=str(config.STATIC_DIR),
    )
    # Allow every file at its limit plus form overhead
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_FILE_SIZE * config.MAX_UPLOAD_FILES + 1024 * 1024
    app.extensions[EXTENSION_KEY] = state or ServiceState.create()

    @app.before_serving
    async def startup():
        config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        await get_state().start()

    @app.after_serving
    async def shutdown():
        await get_state().stop()

    @app.route("/")
    async def index():
        """Render the single-page frontend."""
        return await render_template(
            "index.html",
            static_version=config.STATIC_VERSION,
            chat_model=config.CHAT_MODEL,
            max_files=config.MAX_UPLOAD_FILES,
            max_file_mb=config.MAX_FILE_SIZE // (1024 * 1024),
        )

    @app.route("/upload", methods=["POST"])
    async def upload():
        """Ingest 1-2 uploaded documents.

        Returns JSON:
        {
            "success": true,
            "files": [{"id", "name", "pages", "size", "type"}, ...]
        }
        """
        state = get_state()
        uploads = _collect_uploads(await request.files)
        contents = _validate_uploads(uploads)

        config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

        ingested = []
        try:
            for upload_file, data in zip(uploads, contents):
                path = config.UPLOAD_DIR / _stored_name(upload_file.filename)
                path.write_bytes(data)
                document = await state.pipeline.ingest(
                    Upload(filename=upload_file.filename, path=path, size=len(data))
                )
                ingested.append(document)
        except Exception:
            # One bad file fails the whole request
            for document in ingested:
                await state.pipeline.rollback(document.id)
            raise

        logger.info("upload_completed", files=[d.name for d in ingested])

        return jsonify({
            "success": True,
            "files": [
                {
                    "id": d.id,
                    "name": d.name,
                    "pages": d.page_count,
                    "size": d.size,
                    "type": d.content_type,
                }
                for d in ingested
            ],
        })

    @app.route("/query", methods=["POST"])
    async def query():
        """Answer a question about the uploaded documents.

        Expects JSON body: {"question": "..."}

        Returns JSON:
        {"answer": "...", "success": true, "cached": false, "sources": [...]}
        """
        body = parse_body(QueryRequest, await request.get_json(silent=True))

        logger.info("query_received", question_preview=(body.question or "")[:100])

        result = await get_state().pipeline.answer(body.question)

        return jsonify({
            "answer": result.answer,
            "success": True,
            "cached": result.cached,
            "sources": result.sources,
        })

    @app.route("/health")
    async def health():
        """Ingestion status and per-document summary."""
        state = get_state()
        return jsonify({
            "status": "healthy",
            "documentsLoaded": len(state.store) > 0,
            "documentCount": len(state.store),
            "documents": state.store.summaries(),
            "cacheEntries": len(state.cache),
        })

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.route("/pdf/<doc_id>")
    async def preview(doc_id: str):
        """Stream an uploaded document's raw bytes for preview."""
        state = get_state()
        document = state.store.get(doc_id)
        path = await state.files.acquire(doc_id) if document else None
        if path is None:
            raise NotFoundError("Document not found or no longer available")

        async def release():
            await state.files.release(doc_id, path)

        response = Response(
            _stream_file(path, release),
            mimetype=document.content_type,
        )
        response.headers["Content-Disposition"] = f'inline; filename="{secure_filename(document.name)}"'
        return response

    @app.route("/history")
    async def document_history():
        """List uploaded documents, newest first."""
        entries = get_state().document_history.list()
        return jsonify({"success": True, "history": [e.to_dict() for e in entries]})

    @app.route("/history/<entry_id>")
    async def document_history_entry(entry_id: str):
        entry = get_state().document_history.get(entry_id)
        if entry is None:
            raise NotFoundError("History entry not found")
        return jsonify({"success": True, "entry": entry.to_dict()})

    @app.route("/search-history")
    async def search_history():
        """List answered questions, newest first."""
        entries = get_state().search_history.list()
        return jsonify({"success": True, "history": [e.to_dict() for e in entries]})

    async def _send_report(fmt: str, title: str, items: List[ReportItem]) -> Response:
        if not items:
            raise ValidationError("Nothing to export")

        state = get_state()
        try:
            report = await asyncio.to_thread(build_report, fmt, title, items)
        except Exception as e:
            logger.error("report_generation_failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamError("Failed to generate report", details=str(e)) from e

        # Registered so the sweeper removes it if the stream never finishes
        key = f"export:{report.path.name}"
        await state.files.register(key, report.path)

        async def cleanup():
            await state.files.discard(key)

        response = Response(_stream_file(report.path, cleanup), mimetype=report.mimetype)
        response.headers["Content-Disposition"] = f'attachment; filename="{report.filename}"'
        return response

    @app.route("/export-query", methods=["POST"])
    async def export_query():
        """Export a single question and answer as PDF or DOC.

        Expects JSON body: {"format": "pdf"|"doc", "question": "...", "answer": "..."}
        """
        body = parse_body(ExportQueryRequest, await request.get_json(silent=True))
        if not body.answer.strip():
            raise ValidationError("No answer to export")

        item = ReportItem(question=body.question.strip() or "Question", answer=body.answer.strip())
        return await _send_report(body.format, "Document Q&A Report", [item])

    @app.route("/export-history", methods=["POST"])
    async def export_history():
        """Export search history as PDF or DOC.

        Expects JSON body: {"format": "pdf"|"doc", "entries": [optional list]}
        Without "entries" the current search history is exported, oldest first.
        """
        body = parse_body(ExportHistoryRequest, await request.get_json(silent=True))

        if body.entries is None:
            items = [
                ReportItem(
                    question=e.data.get("question", ""),
                    answer=e.data.get("answer", ""),
                    timestamp=e.created_at.isoformat(),
                )
                for e in get_state().search_history.list(newest_first=False)
            ]
        else:
            items = [
                ReportItem(question=e.question, answer=e.answer, timestamp=e.timestamp)
                for e in body.entries
                if e.answer.strip()
            ]

        return await _send_report(body.format, "Search History Report", items)

    @app.errorhandler(DocQAError)
    async def handle_docqa_error(error: DocQAError):
        log = logger.error if error.status_code >= 500 else logger.warning
        log(
            "request_failed",
            error=error.message,
            details=error.details,
            status_code=error.status_code,
            path=request.path,
        )
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    async def request_too_large(error):
        return jsonify({
            "success": False,
            "error": f"Upload too large (max {config.MAX_FILE_SIZE // (1024 * 1024)}MB per file)",
        }), 400

    @app.errorhandler(404)
    async def not_found(error):
        """Handle 404 errors."""
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(Exception)
    async def internal_error(error: Exception):
        """Turn anything unhandled into a 500 without taking the process down."""
        if isinstance(error, HTTPException):
            return jsonify({"success": False, "error": error.description}), error.code
        logger.error(
            "internal_server_error",
            error=str(error),
            error_type=type(error).__name__,
            path=request.path,
        )
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return app


app = create_app()


if __name__ == "__main__":
    # For development - use hypercorn docqa.main:app in production
    app.run(host="0.0.0.0", port=config.PORT, debug=True)
