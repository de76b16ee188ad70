"""Application entrypoint: starts the scheduler service and optional web app."""

import logging

from status_scheduler.config import Config  # App configuration
from status_scheduler.credentials import load_secret  # Token from mounted secrets
from status_scheduler.log import setup_logging  # Console/file logging
from status_scheduler.service import StatusSchedulerService  # Background evaluation loop
from status_scheduler.slack import SlackClient  # Remote status collaborator
from status_scheduler.web import create_app  # Flask app factory


def main() -> None:
    """Validate config, load the token, then run the loop (and web app)."""
    setup_logging(Config.LOG_LEVEL, Config.LOG_FILE)
    Config.validate()  # Bad interval/locale is fatal at startup
    # Missing credentials are fatal: there is no degraded mode without them
    token = load_secret(Config.TOKEN_KEYID, Config.SECRETS_DIR)
    client = SlackClient(token, api_base=Config.API_BASE, timeout=Config.API_TIMEOUT_SEC)
    service = StatusSchedulerService(client)
    service.start()  # Start background worker thread
    logging.getLogger("status_scheduler").info(
        "scheduler started (interval=%ss, schedule=%s)", Config.INTERVAL_SECONDS, Config.SCHEDULE_PATH
    )
    try:
        if Config.WEB_ENABLE:
            app = create_app(service)  # Build Flask app bound to the service
            app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG, threaded=True, use_reloader=False)
        else:
            service.scheduler.join()
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()


if __name__ == "__main__":
    main()
