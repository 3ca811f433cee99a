import logging
import os

from dotenv import load_dotenv

dotenv_path = os.getenv('SCOUT_DOTENV', '.env')
load_dotenv(dotenv_path)

from app import app
from scout import get_runtime

logger = logging.getLogger("scout")

if __name__ == '__main__':
    host = os.getenv('HOST', '127.0.0.1')
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('DEBUG', 'False').lower() == 'true'

    runtime = get_runtime()
    settings = runtime.settings
    logger.info("Starting scout service on %s:%s", host, port)
    logger.info("Scouts loaded: %s", ", ".join(sorted(runtime.scouts)) or "none")
    if not settings.webhook_url:
        logger.warning("GOOGLE_CHAT_WEBHOOK_URL missing; alerts will be skipped.")
    if not (settings.unipile_api_key and settings.unipile_account_id):
        logger.warning("Unipile credentials missing; LinkedIn sources will be skipped.")
    if not (settings.reddit_client_id and settings.reddit_client_secret):
        logger.warning("Reddit credentials missing; subreddit sources will be skipped.")

    app.run(host=host, port=port, debug=debug, threaded=True)
