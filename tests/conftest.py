"""Shared pytest fixtures for all test modules."""

import json
import os
import subprocess
import sys

import httpx
import pytest

import camlaunch.redact as redact_module
from camlaunch.config import LaunchConfig

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the camlaunch CLI as a subprocess."""

    def _run(*args, cwd=None):
        result = subprocess.run(
            [sys.executable, "-m", "camlaunch.camlaunch", *args],
            capture_output=True,
            text=True,
            cwd=cwd or project_root,
            stdin=subprocess.DEVNULL,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture(autouse=True)
def _reset_redaction():
    """Registered secrets are module state; keep tests independent."""
    redact_module.clear_secrets()
    yield
    redact_module.clear_secrets()


# ── Local files ─────────────────────────────────────────────────────


@pytest.fixture
def credential_files(tmp_path):
    """Write client id/secret files and return their paths."""
    id_path = tmp_path / "client-id.dat"
    secret_path = tmp_path / "client-secret.dat"
    id_path.write_text("1234-abcd.apps.googleusercontent.com\n")
    secret_path.write_text("  s3cr3t-client-value  \n")
    return str(id_path), str(secret_path)


@pytest.fixture
def launch_config(tmp_path, credential_files):
    """A LaunchConfig for project 'acme' that never sleeps between polls."""
    id_path, secret_path = credential_files
    return LaunchConfig(
        project="acme",
        client_id_file=id_path,
        client_secret_file=secret_path,
        token_cache_dir=str(tmp_path / "tokens"),
        poll_interval=0,
    )


# ── Fake Google APIs ────────────────────────────────────────────────


class FakeGoogle:
    """In-memory stand-in for the OAuth, Storage and Compute endpoints.

    Records every request so tests can assert on what was sent.
    """

    def __init__(self):
        self.requests = []
        self.existing_buckets = []
        self.failing_buckets = set()
        self.operation_statuses = ["RUNNING", "DONE"]
        self.operation_errors = []
        self.token_status = 200
        self.insert_status = 200
        self._polls = 0

    def transport(self):
        return httpx.MockTransport(self.handle)

    def calls(self, method, path_fragment):
        return [r for r in self.requests if r.method == method and path_fragment in r.url.path]

    def bucket_inserts(self):
        return [json.loads(r.content)["name"] for r in self.calls("POST", "/storage/v1/b")]

    def instance_inserts(self):
        return [json.loads(r.content) for r in self.calls("POST", "/instances")]

    def handle(self, request):
        self.requests.append(request)
        host = request.url.host
        path = request.url.path

        if host == "accounts.google.com" and path == "/o/oauth2/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(
                200,
                json={
                    "access_token": "ya29.fake-access-token",
                    "refresh_token": "1//fake-refresh-token",
                    "expires_in": 3600,
                    "token_type": "Bearer",
                },
            )

        if host == "storage.googleapis.com" and path == "/storage/v1/b":
            if request.method == "GET":
                return httpx.Response(200, json={"kind": "storage#buckets", "items": [{"name": n} for n in self.existing_buckets]})
            name = json.loads(request.content)["name"]
            if name in self.failing_buckets:
                return httpx.Response(409, json={"error": {"code": 409, "message": f"Bucket {name} already exists"}})
            return httpx.Response(200, json={"kind": "storage#bucket", "id": name, "name": name, "location": "US"})

        if host == "www.googleapis.com" and path.startswith("/compute/v1/projects/"):
            if request.method == "POST" and path.endswith("/instances"):
                if self.insert_status != 200:
                    return httpx.Response(self.insert_status, json={"error": {"code": self.insert_status, "message": "quota exceeded"}})
                return httpx.Response(200, json={"kind": "compute#operation", "name": "operation-1", "status": "PENDING"})
            if "/operations/" in path:
                status = self.operation_statuses[min(self._polls, len(self.operation_statuses) - 1)]
                self._polls += 1
                op = {"kind": "compute#operation", "name": path.rsplit("/", 1)[-1], "status": status}
                if status == "DONE" and self.operation_errors:
                    op["error"] = {"errors": self.operation_errors}
                return httpx.Response(200, json=op)
            if request.method == "GET" and "/instances/" in path:
                name = path.rsplit("/", 1)[-1]
                return httpx.Response(200, json={"kind": "compute#instance", "name": name, "status": "RUNNING"})

        return httpx.Response(404, json={"error": {"code": 404, "message": f"no route for {request.method} {path}"}})


@pytest.fixture
def fake_google():
    return FakeGoogle()
