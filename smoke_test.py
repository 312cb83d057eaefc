#!/usr/bin/env python3
"""
TreeFriends post-deploy smoke test.
Hits the health check and the random-tree endpoint and asserts the JSON
payloads carry the fields the grid client reads.
Usage:
    python smoke_test.py                          # uses http://127.0.0.1:5001
    python smoke_test.py https://your-url.app     # custom base URL
Exit codes:
    0 = all checks passed
    1 = one or more checks failed
"""
import json
import sys
import urllib.error
import urllib.request

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
DEFAULT_BASE_URL = "http://127.0.0.1:5001"

SAMPLE_COUNT = 3

# Keys every serialized tree must carry.
TREE_REQUIRED_KEYS = [
    "tree_id",
    "latitude",
    "longitude",
    "neighborhood",
    "tree_friends_score",
    "affordability_score",
    "accessibility_score",
    "accessibility_band",
    "summary",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def fetch_json(url: str) -> tuple[int, dict | None]:
    """Fetch a URL, return (status_code, parsed JSON or None)."""
    req = urllib.request.Request(url, headers={"User-Agent": "TreeFriends-Smoke/1.0"})
    try:
        with urllib.request.urlopen(req, timeout=15) as resp:
            body = resp.read().decode("utf-8", errors="replace")
            status = resp.status
    except urllib.error.HTTPError as e:
        return e.code, None
    except Exception as e:
        print(f"  FETCH ERROR: {e}")
        return 0, None
    try:
        return status, json.loads(body)
    except json.JSONDecodeError:
        return status, None


def missing_keys(payload: dict, keys: list[str]) -> list[str]:
    return [k for k in keys if k not in payload]


# ---------------------------------------------------------------------------
# Test runner
# ---------------------------------------------------------------------------
def run_tests(base_url: str) -> bool:
    passed = True

    # --- Test 1: Health check reports a non-empty collection ---
    print(f"\n[1] Health check: {base_url}/healthz")
    status, data = fetch_json(f"{base_url}/healthz")
    if status != 200 or not data:
        print(f"  FAIL: status {status} (expected 200 with JSON body)")
        passed = False
    elif not data.get("trees"):
        print("  FAIL: datasets loaded but no trees survived parsing")
        passed = False
    else:
        print(f"  PASS ({data['trees']:,} trees, model {data.get('model_version')})")

    # --- Test 2: Random trees are fully serialized ---
    url = f"{base_url}/api/trees/random?count={SAMPLE_COUNT}"
    print(f"\n[2] Random trees: {url}")
    status, data = fetch_json(url)
    if status != 200 or not data:
        print(f"  FAIL: status {status} (expected 200 with JSON body)")
        passed = False
    else:
        trees = data.get("trees") or []
        if len(trees) != SAMPLE_COUNT:
            print(f"  FAIL: got {len(trees)} trees, expected {SAMPLE_COUNT}")
            passed = False
        else:
            problems = [missing_keys(t, TREE_REQUIRED_KEYS) for t in trees]
            problems = [p for p in problems if p]
            if problems:
                print(f"  FAIL: missing keys: {problems[0]}")
                passed = False
            else:
                print(f"  PASS ({SAMPLE_COUNT} trees, all keys present)")

    # --- Test 3: Invalid count is rejected ---
    print(f"\n[3] Bad request: {base_url}/api/trees/random?count=0")
    status, _ = fetch_json(f"{base_url}/api/trees/random?count=0")
    if status == 400:
        print("  PASS (returned 400)")
    else:
        print(f"  WARN: returned {status}")

    return passed


def main():
    base_url = sys.argv[1].rstrip("/") if len(sys.argv) > 1 else DEFAULT_BASE_URL
    print("TreeFriends Smoke Test")
    print(f"Target: {base_url}")
    print("=" * 60)

    ok = run_tests(base_url)

    print("\n" + "=" * 60)
    if ok:
        print("ALL CHECKS PASSED")
        sys.exit(0)
    else:
        print("ONE OR MORE CHECKS FAILED")
        sys.exit(1)


if __name__ == "__main__":
    main()
