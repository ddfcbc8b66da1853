"""Global test fixtures."""

import os

import logfire

# Set secrets before any test modules import Config
# This must happen at module load time, not in a fixture
os.environ.setdefault("YAUTH_COOKIE__SECRET", "test-secret-for-unit-tests-min-32")
os.environ.setdefault("YAUTH_DATA_PROTECTION__SECRET", "test-state-secret-for-unit-tests")

# Instrumentation in create_app() expects a configured logfire
logfire.configure(send_to_logfire=False, console=False)
