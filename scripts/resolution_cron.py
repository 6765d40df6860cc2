# scripts/resolution_cron.py
import logging
import os
import sys

import requests
from apscheduler.schedulers.blocking import BlockingScheduler
from dotenv import load_dotenv

load_dotenv()

API_BASE_URL = os.getenv('API_BASE_URL', 'http://localhost:8000').rstrip('/')
CRON_SECRET = os.getenv('CRON_SECRET', '')
INTERVAL_MINUTES = int(os.getenv('RESOLUTION_INTERVAL_MINUTES', '5'))
REQUEST_TIMEOUT = float(os.getenv('RESOLUTION_REQUEST_TIMEOUT', '60'))

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)
logger = logging.getLogger('parlay_resolution_cron')


def run_sweep():
    """POST to the resolve endpoint and log the sweep summary"""
    headers = {'Authorization': f"Bearer {CRON_SECRET}"} if CRON_SECRET else {}
    try:
        response = requests.post(f"{API_BASE_URL}/api/cron/resolve", headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error(f"Resolution sweep request failed: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"Resolution sweep returned {response.status_code}: {response.text[:200]}")
        return None

    summary = response.json()
    logger.info(
        f"Sweep done: checked={summary.get('checked')} resolved={summary.get('resolved')} "
        f"updated={summary.get('updated')} markets={summary.get('markets_queried')} failures={summary.get('failures')}"
    )
    return summary


def main():
    scheduler = BlockingScheduler()
    scheduler.add_job(
        run_sweep,
        'interval',
        minutes=INTERVAL_MINUTES,
        id='parlay_resolution',
        max_instances=1,
        coalesce=True
    )

    logger.info(f"Parlay resolution every {INTERVAL_MINUTES} min against {API_BASE_URL}")
    run_sweep()
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Resolution cron stopped")


if __name__ == "__main__":
    main()
