"""Example queue worker recording each processed job.

Run with:
    python examples/queue_worker_example.py

Each job runs with a fresh record: the worker resets the Clockwork between
jobs and resolves the finished one as a queue job before storing it in a
SQLite file next to this script.
"""

import random
import time
from pathlib import Path

from clockworkpy import Clockwork, SQLiteStorage

JOBS = [
    {"name": "SendInvoice", "payload": {"invoice": 42}},
    {"name": "ResizeImage", "payload": {"image": "cat.png", "width": 320}},
    {"name": "SendInvoice", "payload": {"invoice": 43}},
]


def process(clockwork: Clockwork, job: dict) -> str:
    clockwork.info("processing job", {"job": job["name"]})
    with clockwork.request.timeline.measure(f"Handle {job['name']}"):
        time.sleep(random.uniform(0.01, 0.05))
    clockwork.add_cache_query("write", f"jobs:{job['name']}", job["payload"], duration=0.4)
    return "processed"


def main() -> None:
    storage = SQLiteStorage(str(Path(__file__).with_name("clockwork.db")))
    clockwork = Clockwork()

    for job in JOBS:
        clockwork.reset()
        try:
            status = process(clockwork, job)
        except Exception as exc:
            clockwork.error("job failed", {"exception": exc})
            status = "failed"
        clockwork.resolve_as_queue_job(
            job["name"], status=status, payload=job["payload"], queue="default"
        )
        storage.store_sync(clockwork.request)
        print(f"{job['name']}: stored as {clockwork.request.id}")


if __name__ == "__main__":
    main()
