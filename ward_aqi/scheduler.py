# file: ward_aqi/scheduler.py

import asyncio
import threading
import schedule
import logging
import time

from ward_aqi.store import AirQualityStore, RefreshError, StationFetcher


def refresh_job(store: AirQualityStore, fetcher: StationFetcher) -> None:
    """One refresh cycle; failures are logged and the last table stays published."""
    try:
        asyncio.run(store.refresh(fetcher))
    except RefreshError as e:
        logging.error(f"Scheduled refresh failed: {e}")
    except Exception as e:
        logging.error(f"Scheduled refresh crashed: {e}")


def run_schedule(store: AirQualityStore, fetcher: StationFetcher, interval_minutes: int = 15) -> threading.Thread:
    """Schedule periodic refreshes of the region table in a background thread."""

    schedule.every(interval_minutes).minutes.do(refresh_job, store, fetcher)

    def run_continuously():
        while True:
            schedule.run_pending()
            time.sleep(30)

    thread = threading.Thread(target=run_continuously, daemon=True)
    thread.start()
    logging.info(f"Scheduler started in background thread (every {interval_minutes} min)")
    return thread
