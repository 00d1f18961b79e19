"""
tests/conftest.py
"""
from __future__ import annotations

from typing import Generator

import pytest
from click.testing import Result
from flask.testing import FlaskCliRunner

from quill.blog import app
from quill.changeset import Changeset, FieldType


@pytest.fixture(scope="session", autouse=True)
def _configure_app() -> None:
    """Configure the Flask app *once* before the first test runs."""
    app.config.update(
        TESTING=True,
        SECRET_KEY="test-secret",
        QUILL_CLIENT_VALIDATION=True,
    )


@pytest.fixture
def app_ctx() -> Generator[None, None, None]:
    """A request context, so templates can flash and read the session."""
    with app.test_request_context("/posts/new"):
        yield


@pytest.fixture
def cli() -> FlaskCliRunner:
    return app.test_cli_runner()


@pytest.fixture
def invoke(cli):
    """Run a `flask` sub-command and return click's Result."""

    def _invoke(*args: str) -> Result:
        return cli.invoke(args=list(args))

    return _invoke


@pytest.fixture
def blank():
    """
    Factory for an empty changeset with the given field types,
    e.g. ``blank(age=FieldType.INTEGER)``.
    """

    def _blank(**types: FieldType) -> Changeset:
        return Changeset.cast({}, {}, types, types=types)

    return _blank
