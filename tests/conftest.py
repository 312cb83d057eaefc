"""Shared fixtures for the TreeFriends test suite.

Provides small hand-made versions of the three datasets, temporary files
wired in through the TREEFRIENDS_* environment variables, and a Flask
test client.
"""

import os

import pytest

# Keep the in-memory rate limiter out of the way BEFORE importing app
# (it reads RATE_LIMIT_DEFAULT at import time).
os.environ["RATE_LIMIT_DEFAULT"] = "10000/minute"
os.environ.pop("SENTRY_DSN", None)

import pipeline  # noqa: E402


# Three neighborhoods around Gramercy plus one far-away row with a blank
# name, and one row with a bad latitude.
NEIGHBORHOODS_CSV = "\ufeff" + """name,latitude,longitude
Gramercy Park,40.7368,-73.9845
Stuyvesant   Town,40.7316,-73.9780
Chelsea,40.7465,-74.0014
"Bad, Row",not-a-number,-73.99
   ,40.7000,-73.9900
"""

RENTS_CSV = """areaName,Borough,Rent
Gramecy Park,Manhattan,4200
Stuyvesant Town/PCV,Manhattan,3900
"Chelsea",Manhattan,4800
Nowhere,Manhattan,n/a
"""

# Row 4 has no latitude and is dropped; row 5 has no tree_id.
TREES_CSV = """tree_id,status,sidewalk,problems,latitude,longitude,spc_common
1,Alive,NoDamage,None,40.7360,-73.9840,London planetree
2,Alive,Damage,"Stones,BranchLights",40.7361,-73.9841,Honeylocust
3,Dead,NoDamage,None,40.7362,-73.9842,
4,Alive,NoDamage,None,,-73.9843,pin oak
,Stump,,,40.7363,-73.9843,  Ginkgo
"""


@pytest.fixture
def sample_csvs():
    return TREES_CSV, NEIGHBORHOODS_CSV, RENTS_CSV


@pytest.fixture
def dataset_files(tmp_path, monkeypatch):
    """Write the sample datasets to disk and point the pipeline at them."""
    trees = tmp_path / "trees.csv"
    neighborhoods = tmp_path / "neighborhoods.csv"
    rents = tmp_path / "rents.csv"
    trees.write_text(TREES_CSV, encoding="utf-8")
    neighborhoods.write_text(NEIGHBORHOODS_CSV, encoding="utf-8")
    rents.write_text(RENTS_CSV, encoding="utf-8")

    monkeypatch.setenv("TREEFRIENDS_TREE_CSV", str(trees))
    monkeypatch.setenv("TREEFRIENDS_NEIGHBORHOOD_CSV", str(neighborhoods))
    monkeypatch.setenv("TREEFRIENDS_RENT_CSV", str(rents))
    pipeline.reset_cache()
    yield pipeline.DatasetPaths(
        trees=str(trees), neighborhoods=str(neighborhoods), rents=str(rents),
    )
    pipeline.reset_cache()


@pytest.fixture
def missing_datasets(tmp_path, monkeypatch):
    """Point the pipeline at files that do not exist."""
    monkeypatch.setenv("TREEFRIENDS_TREE_CSV", str(tmp_path / "nope-trees.csv"))
    monkeypatch.setenv("TREEFRIENDS_NEIGHBORHOOD_CSV", str(tmp_path / "nope-hoods.csv"))
    monkeypatch.setenv("TREEFRIENDS_RENT_CSV", str(tmp_path / "nope-rents.csv"))
    pipeline.reset_cache()
    yield
    pipeline.reset_cache()


@pytest.fixture()
def client():
    """Flask test client. Datasets come from whichever fixture ran first."""
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c
