"""
Gunicorn config. Warms the scored-tree cache in each worker process
(post_fork) so the first request does not pay for the k-d tree build.

when_ready hook runs a post-deploy smoke test against localhost once the
server is accepting connections.
"""

import logging
import os
import threading


def when_ready(server):
    """Run smoke test in a background thread once gunicorn is listening."""
    port = os.environ.get("PORT", "8000")
    base_url = f"http://127.0.0.1:{port}"

    def _run_smoke():
        import time
        time.sleep(2)  # brief grace period for workers to finish forking
        logger = logging.getLogger("gunicorn.error")
        try:
            from smoke_test import run_tests
            logger.info("Post-deploy smoke test starting against %s", base_url)
            ok = run_tests(base_url)
            if ok:
                logger.info("Post-deploy smoke test PASSED")
            else:
                logger.error("Post-deploy smoke test FAILED")
        except Exception:
            logger.exception("Post-deploy smoke test crashed")

    t = threading.Thread(target=_run_smoke, daemon=True)
    t.start()


def post_fork(server, worker):
    """Load and score the tree datasets in this gunicorn worker process."""
    try:
        from pipeline import get_trees
        trees = get_trees()
        logging.getLogger(__name__).info(
            "Worker %s warmed tree cache (%d trees)", worker.pid, len(trees)
        )
    except Exception as e:
        logging.getLogger(__name__).exception("Failed to warm tree cache: %s", e)
