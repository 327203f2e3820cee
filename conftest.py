"""
Global pytest configuration for textid tests.

Keeps analyzer runs sequential and small by default and makes sure no
model directory from the environment leaks into the tests.
"""

import os

import pytest


@pytest.fixture(scope="session", autouse=True)
def configure_test_environment():
    """Configure predictable settings for the test session."""
    saved_model_dir = os.environ.pop("TEXTID_MODEL_DIR", None)

    if "TEXTID_PARALLEL" not in os.environ:
        os.environ["TEXTID_PARALLEL"] = "False"

    if "TEXTID_MAX_WORKERS" not in os.environ:
        os.environ["TEXTID_MAX_WORKERS"] = "2"

    yield

    for key in ["TEXTID_PARALLEL", "TEXTID_MAX_WORKERS"]:
        os.environ.pop(key, None)
    if saved_model_dir is not None:
        os.environ["TEXTID_MODEL_DIR"] = saved_model_dir
