from datetime import datetime, timezone
import atexit
import logging
import posixpath
import re
import sys

from flask import Blueprint, Flask, current_app, jsonify, redirect, request, send_from_directory
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError

from . import db, store
from .auth import check_credentials, clear_auth_cookie, read_auth_user, set_auth_cookie
from .config import Settings, get_settings
from .date_ranges import parse_period
from .logging_setup import setup_logging
from .notifier import Notifier, NotifyEvent
from .reports import build_report, report_to_csv, report_to_dict, report_to_text
from .scheduler import setup_schedulers
from .serializers import parse_iso_date, todo_to_dict

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PUBLIC_API_PATHS = {"/api/auth/login", "/api/auth/logout", "/api/auth/status", "/api/health"}
PROTECTED_PAGE_ENDPOINTS = {"todo_tracker.root", "todo_tracker.app_js"}
PROTECTED_STATIC_FILES = {"index.html", "app.js"}

bp = Blueprint("todo_tracker", __name__)


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


# ---------- Helpers ----------
def app_settings() -> Settings:
    return current_app.config["SETTINGS"]


def notifier() -> Notifier:
    return current_app.extensions["notifier"]


def body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_id(raw: str) -> int:
    if not re.fullmatch(r"[0-9]+", raw or "") or int(raw) <= 0:
        raise ApiError(400, "Invalid id")
    return int(raw)


def require_period(raw: str) -> str:
    period = parse_period(raw)
    if not period:
        raise ApiError(400, "Invalid report period")
    return period


def reference_from(start_date_raw):
    """startDate=YYYY-MM-DD -> midnight UTC of that day; absent -> now."""
    if start_date_raw is None or start_date_raw == "":
        return datetime.now(timezone.utc)
    d = parse_iso_date(start_date_raw) if isinstance(start_date_raw, str) else None
    if d is None:
        raise ApiError(400, "Invalid startDate. Use YYYY-MM-DD.")
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def build_report_or_fail(period, reference):
    try:
        return build_report(period, reference)
    except SQLAlchemyError:
        logger.exception("Report generation failed period=%s", period)
        raise ApiError(500, "Report generation failed")


# ---------- Auth ----------
@bp.post("/api/auth/login")
def login():
    data = body()
    username = data.get("username").strip() if isinstance(data.get("username"), str) else ""
    password = data.get("password") if isinstance(data.get("password"), str) else ""

    if not check_credentials(app_settings(), username, password):
        logger.warning("Failed login attempt for user=%r", username)
        return jsonify({"error": "Invalid credentials"}), 401

    return set_auth_cookie(jsonify({"ok": True}), app_settings(), username)


@bp.post("/api/auth/logout")
def logout():
    return clear_auth_cookie(jsonify({"ok": True}), app_settings())


@bp.get("/api/auth/status")
def auth_status():
    user = read_auth_user(app_settings())
    return jsonify({"authenticated": bool(user), "user": user})


@bp.get("/api/health")
def health():
    s = app_settings()
    return jsonify({"ok": True, "env": s.app_env, "baseUrl": s.base_url})


# ---------- Settings ----------
@bp.get("/api/settings/email")
def get_email_setting():
    return jsonify({"email": store.get_email_recipient()})


@bp.put("/api/settings/email")
def put_email_setting():
    raw = body().get("email")
    if not isinstance(raw, str):
        raise ApiError(400, "Email must be a string")
    email = raw.strip().lower()
    if not EMAIL_RE.match(email):
        raise ApiError(400, "Invalid email address")
    return jsonify({"email": store.set_email_recipient(email)})


# ---------- Todos ----------
@bp.get("/api/todos")
def list_todos():
    status = request.args.get("status", "all")
    if status not in store.TODO_STATUSES:
        raise ApiError(400, "Invalid status")
    return jsonify([todo_to_dict(t) for t in store.list_todos(status)])


@bp.post("/api/todos")
def create_todo():
    data = body()
    title = data.get("title").strip() if isinstance(data.get("title"), str) else ""
    notes = data.get("notes") if isinstance(data.get("notes"), str) else None
    due_raw = data.get("dueDate") if isinstance(data.get("dueDate"), str) else None
    email_on_create = bool(data.get("emailOnCreate"))

    if not title:
        raise ApiError(400, "Task title is required")

    due_date = None
    if due_raw:
        due_date = parse_iso_date(due_raw)
        if due_date is None:
            raise ApiError(400, "Invalid dueDate. Use YYYY-MM-DD.")

    t = store.create_todo(title, notes, due_date, notify_on_complete=email_on_create)
    emailed = notifier().notify(NotifyEvent.CREATED, t) if email_on_create else False
    return jsonify({"todo": todo_to_dict(t), "emailed": emailed}), 201


@bp.patch("/api/todos/<todo_id>/complete")
def complete_todo(todo_id):
    tid = parse_id(todo_id)
    email_on_complete = bool(body().get("emailOnComplete"))

    t = store.set_completed(tid, True)
    if not t:
        raise ApiError(404, "Todo not found")

    emailed = False
    if email_on_complete or t.notify_on_complete:
        emailed = notifier().notify(NotifyEvent.COMPLETED, t)
    return jsonify({"todo": todo_to_dict(t), "emailed": emailed})


@bp.patch("/api/todos/<todo_id>/reopen")
def reopen_todo(todo_id):
    tid = parse_id(todo_id)
    t = store.set_completed(tid, False)
    if not t:
        raise ApiError(404, "Todo not found")

    emailed = notifier().notify(NotifyEvent.REOPENED, t) if t.notify_on_complete else False
    return jsonify({"todo": todo_to_dict(t), "emailed": emailed})


@bp.delete("/api/todos/<todo_id>")
def delete_todo(todo_id):
    tid = parse_id(todo_id)
    if not store.delete_todo(tid):
        raise ApiError(404, "Todo not found")
    return "", 204


@bp.patch("/api/todos/<todo_id>/notes")
def edit_todo(todo_id):
    tid = parse_id(todo_id)
    data = body()

    if not isinstance(data.get("title"), str):
        raise ApiError(400, "Title must be a string")
    notes_raw = data.get("notes")
    if notes_raw is not None and not isinstance(notes_raw, str):
        raise ApiError(400, "Notes must be a string")

    title = data["title"].strip()
    if not title:
        raise ApiError(400, "Task title is required")
    notes = (notes_raw or "").strip() or None

    t = store.update_details(tid, title, notes)
    if not t:
        raise ApiError(404, "Todo not found")

    emailed = notifier().notify(NotifyEvent.EDITED, t) if t.notify_on_complete else False
    return jsonify({"todo": todo_to_dict(t), "emailed": emailed})


# ---------- Reports ----------
@bp.get("/api/reports/<period>")
def get_report(period):
    period = require_period(period)
    reference = reference_from(request.args.get("startDate"))
    return jsonify(report_to_dict(build_report_or_fail(period, reference)))


@bp.post("/api/reports/<period>/email")
def email_report(period):
    period = require_period(period)
    reference = reference_from(body().get("startDate"))
    report = build_report_or_fail(period, reference)
    emailed = notifier().notify(NotifyEvent.REPORT, report)
    return jsonify({"emailed": emailed, "report": report_to_dict(report)})


@bp.get("/api/reports/<period>/download")
def download_report(period):
    period = require_period(period)
    fmt = "csv" if request.args.get("format") == "csv" else "txt"
    reference = reference_from(request.args.get("startDate"))
    report = build_report_or_fail(period, reference)

    today = datetime.now(timezone.utc).date().isoformat()
    filename = f"todo-{period}-report-{today}.{fmt}"
    if fmt == "csv":
        content, content_type = report_to_csv(report), "text/csv; charset=utf-8"
    else:
        content, content_type = report_to_text(report), "text/plain; charset=utf-8"

    return current_app.response_class(
        content,
        content_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------- Pages ----------
@bp.get("/login")
def login_page():
    if read_auth_user(app_settings()):
        return redirect("/")
    return send_from_directory(current_app.static_folder, "login.html")


@bp.get("/")
@bp.get("/index.html")
def root():
    return send_from_directory(current_app.static_folder, "index.html")


@bp.get("/app.js")
def app_js():
    return send_from_directory(current_app.static_folder, "app.js")


# ---------- Gate ----------
def is_protected_page() -> bool:
    if request.endpoint in PROTECTED_PAGE_ENDPOINTS:
        return True
    if request.endpoint == "static":
        # the static route serves "./index.html" and "static/../app.js" too
        filename = posixpath.normpath((request.view_args or {}).get("filename", ""))
        return filename.lstrip("/") in PROTECTED_STATIC_FILES
    return False


def require_auth():
    if request.method == "OPTIONS":  # CORS preflight
        return None
    path = request.path
    is_api = path.startswith("/api/")
    if is_api and path in PUBLIC_API_PATHS:
        return None
    if not is_api and not is_protected_page():
        return None
    if read_auth_user(app_settings()):
        return None
    if is_api:
        return jsonify({"error": "Unauthorized"}), 401
    return redirect("/login")


def handle_api_error(err: ApiError):
    return jsonify({"error": err.message}), err.status


# ---------- App ----------
def create_app(settings: Settings | None = None, *, start_scheduler: bool = True) -> Flask:
    settings = settings or get_settings()

    # Static assets (login.js, styles.css) are served from the root; the
    # explicit page routes above take precedence and are gated.
    app = Flask(__name__, static_folder="static", static_url_path="/")
    app.config["SETTINGS"] = settings
    CORS(app, resources={r"/api/*": {"origins": settings.base_url}}, supports_credentials=True)

    db.init_engine(settings.db_path)
    db.Base.metadata.create_all(bind=db.engine)
    db.ensure_schema()
    logger.info("Todo store ready db=%s total=%s", settings.db_path, store.count_todos())

    app.extensions["notifier"] = Notifier(settings, store.get_email_recipient)

    app.before_request(require_auth)
    app.register_error_handler(ApiError, handle_api_error)
    app.register_blueprint(bp)

    if start_scheduler:
        scheduler = setup_schedulers(settings, app.extensions["notifier"])
        if scheduler is not None:
            app.extensions["scheduler"] = scheduler
            atexit.register(lambda: scheduler.shutdown(wait=False))

    return app


def main() -> None:
    settings = get_settings()
    level_name = str(settings.log_level).upper()
    setup_logging(log_dir=settings.log_dir, console_level=getattr(logging, level_name, logging.INFO))

    try:
        app = create_app(settings)
    except Exception:
        logger.exception("Failed to start server")
        sys.exit(1)

    logger.info("Todo tracker listening on port %s", settings.port)
    app.run(host="0.0.0.0", port=settings.port, debug=False, use_reloader=False)


if __name__ == "__main__":
    main()
