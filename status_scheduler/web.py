"""Flask web application exposing the scheduler's state read-only."""

import time  # For timestamps on the dashboard

import flask  # Web server and templating

from .service import StatusSchedulerService  # Service providing state and schedule


def create_app(service: StatusSchedulerService) -> flask.Flask:
    """Create and configure the Flask application.

    Args:
      service: Running `StatusSchedulerService` to read state from.

    Returns:
      A Flask app instance with routes for the dashboard and JSON API.
    """
    app = flask.Flask(__name__)

    @app.route("/")
    def index():
        """Render the dashboard page."""
        st = service.get_status()
        preview = service.preview()
        return flask.render_template_string(
            _INDEX_TEMPLATE,
            st=st,
            active=preview["active"],
            nxt=preview["next"],
            age=int(time.time() - st.last_cycle_ts) if st.last_cycle_ts else None,
        )

    @app.route("/api/state")
    def api_state():
        """Return the current service state as JSON."""
        st = service.get_status()
        next_tick = service.scheduler.next_tick_at
        return {
            "running": service.scheduler.is_running,
            "cycles": st.cycles,
            "last_cycle_ts": st.last_cycle_ts,
            "last_outcome": st.last_outcome,
            "expected_status_id": st.expected_status_id,
            "last_set_status_id": st.last_set_status_id,
            "assertive_counter": st.assertive_counter,
            "schedule_items": st.schedule_items,
            "last_error": st.last_error,
            "interval_seconds": service.scheduler.interval_seconds,
            "next_tick_at": next_tick.isoformat() if next_tick else None,
        }

    @app.route("/api/schedule")
    def api_schedule():
        """Return the active and next windows for the current time."""
        return service.preview()

    return app


_INDEX_TEMPLATE = """
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Status Scheduler</title>
  <style>
    body { font-family: system-ui, Arial, sans-serif; margin: 0; background: #111; color: #eee; }
    header { padding: 12px 16px; background: #222; display: flex; align-items: center; justify-content: space-between; gap: 12px; }
    .pill { padding: 4px 8px; border-radius: 999px; font-weight: 600; font-size: 11px; background: #2a2a2a; color: #bbb; border: 1px solid #444; }
    .pill.err { background: #441111; color: #ff9a9a; border-color: #b00020; }
    main { padding: 16px; }
    .card { background: #1b1b1b; padding: 12px; border-radius: 8px; margin-bottom: 12px; max-width: 640px; }
    .meta { color: #9aa; font-size: 12px; }
  </style>
  <meta http-equiv="refresh" content="20">
</head>
<body>
  <header>
    <div style="display:flex; align-items:center; gap:8px">
      <span class="pill">cycles {{ st.cycles }}</span>
      <span class="pill">{{ st.last_outcome or 'pending' }}</span>
      {% if st.last_error %}<span class="pill err">{{ st.last_error }}</span>{% endif %}
    </div>
    <div class="meta">{% if age is not none %}last cycle {{ age }}s ago{% endif %}</div>
  </header>
  <main>
    <div class="card">
      <h3>Active</h3>
      {% if active %}
        <div>{{ active.icon }} <b>{{ active.id }}</b></div>
        <div class="meta">{{ active.start }} &rarr; {{ active.end }}{% if active.do_not_disturb %} &nbsp;|&nbsp; DnD{% endif %}</div>
      {% else %}
        <div class="meta">Nothing scheduled right now.</div>
      {% endif %}
    </div>
    <div class="card">
      <h3>Next</h3>
      {% if nxt %}
        <div>{{ nxt.icon }} <b>{{ nxt.id }}</b></div>
        <div class="meta">{{ nxt.start }} &rarr; {{ nxt.end }}</div>
      {% else %}
        <div class="meta">Nothing else today.</div>
      {% endif %}
    </div>
  </main>
</body>
</html>
"""
