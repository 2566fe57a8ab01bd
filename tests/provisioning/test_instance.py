"""Unit tests for the instance spec builder and the insert/get calls."""

import asyncio

import httpx
import pytest

from camlaunch.auth import SCOPES
from camlaunch.errors import ProvisioningError, SubmissionError
from camlaunch.provisioning.instance import IMAGE_URL, build_instance_spec, get_instance, submit_instance
from camlaunch.provisioning.types import OperationStatus

PREFIX = "https://www.googleapis.com/compute/v1/projects/acme"


def _spec(**overrides):
    kwargs = dict(project="acme", zone="us-central1-a", machine_type="g1-small", instance_name="camlistore-server", cloud_config="#cloud-config\n")
    kwargs.update(overrides)
    return build_instance_spec(**kwargs)


def _metadata(spec):
    return {item["key"]: item["value"] for item in spec["metadata"]["items"]}


# ── build_instance_spec ───────────────────────────────────────────


def test_spec_is_deterministic():
    assert _spec() == _spec()


def test_spec_basics():
    spec = _spec()
    assert spec["name"] == "camlistore-server"
    assert spec["description"] == "Camlistore server"
    assert spec["machineType"] == f"{PREFIX}/zones/us-central1-a/machineTypes/g1-small"
    assert spec["tags"] == {"items": ["http-server", "https-server"]}


def test_spec_boot_disk():
    (disk,) = _spec(instance_name="cam2")["disks"]
    assert disk["autoDelete"] is True
    assert disk["boot"] is True
    assert disk["type"] == "PERSISTENT"
    assert disk["initializeParams"] == {"diskName": "cam2-coreos-stateless-pd", "sourceImage": IMAGE_URL}


def test_spec_metadata():
    spec = _spec(cloud_config="#cloud-config\nfoo: bar\n")
    assert [item["key"] for item in spec["metadata"]["items"]] == [
        "camlistore-username",
        "camlistore-password",
        "camlistore-blob-bucket",
        "camlistore-config-bucket",
        "user-data",
    ]
    metadata = _metadata(spec)
    assert metadata["camlistore-blob-bucket"] == "gs://acme-camlistore-blobs"
    assert metadata["camlistore-config-bucket"] == "gs://acme-camlistore-config"
    assert metadata["user-data"] == "#cloud-config\nfoo: bar\n"


def test_spec_network_and_service_account():
    spec = _spec()
    (nic,) = spec["networkInterfaces"]
    assert nic["network"] == f"{PREFIX}/global/networks/default"
    assert nic["accessConfigs"] == [{"type": "ONE_TO_ONE_NAT", "name": "External NAT"}]
    (account,) = spec["serviceAccounts"]
    assert account["email"] == "default"
    assert account["scopes"] == SCOPES
    assert len(account["scopes"]) == 4


def test_spec_scopes_not_shared():
    spec = _spec()
    spec["serviceAccounts"][0]["scopes"].append("extra")
    assert "extra" not in SCOPES


# ── submit_instance ───────────────────────────────────────────────


def test_submit_instance(fake_google):
    async def _run():
        async with httpx.AsyncClient(transport=fake_google.transport()) as client:
            return await submit_instance(client, "acme", "us-central1-a", _spec())

    op = asyncio.run(_run())
    assert op.name == "operation-1"
    assert op.status is OperationStatus.PENDING
    (request,) = fake_google.calls("POST", "/instances")
    assert request.url.path == "/compute/v1/projects/acme/zones/us-central1-a/instances"
    assert fake_google.instance_inserts() == [_spec()]


def test_submit_instance_api_error(fake_google):
    fake_google.insert_status = 403

    async def _run():
        async with httpx.AsyncClient(transport=fake_google.transport()) as client:
            return await submit_instance(client, "acme", "us-central1-a", _spec())

    with pytest.raises(SubmissionError, match="HTTP 403: quota exceeded") as excinfo:
        asyncio.run(_run())
    assert isinstance(excinfo.value, ProvisioningError)
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)


def test_submit_instance_transport_error():
    def handler(request):
        raise httpx.ConnectError("dns failure", request=request)

    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await submit_instance(client, "acme", "us-central1-a", _spec())

    with pytest.raises(SubmissionError) as excinfo:
        asyncio.run(_run())
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_submit_instance_non_operation_response():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"kind": "compute#instance"}))

    async def _run():
        async with httpx.AsyncClient(transport=transport) as client:
            return await submit_instance(client, "acme", "us-central1-a", _spec())

    with pytest.raises(SubmissionError, match="not an operation"):
        asyncio.run(_run())


# ── get_instance ──────────────────────────────────────────────────


def test_get_instance(fake_google):
    async def _run():
        async with httpx.AsyncClient(transport=fake_google.transport()) as client:
            return await get_instance(client, "acme", "us-central1-a", "camlistore-server")

    instance = asyncio.run(_run())
    assert instance["name"] == "camlistore-server"
    (request,) = fake_google.requests
    assert request.url.path == "/compute/v1/projects/acme/zones/us-central1-a/instances/camlistore-server"


def test_get_instance_not_found():
    transport = httpx.MockTransport(lambda request: httpx.Response(404, json={"error": {"message": "not found"}}))

    async def _run():
        async with httpx.AsyncClient(transport=transport) as client:
            return await get_instance(client, "acme", "us-central1-a", "camlistore-server")

    with pytest.raises(ProvisioningError, match="Error getting instance after creation: HTTP 404"):
        asyncio.run(_run())
