from __future__ import annotations

import anyio
import pytest

from app.ai.errors import ProviderError
from app.jobs.models import DEFAULT_FAILURE_REASON

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _upload(data: bytes = PNG_BYTES, content_type: str = "image/png") -> dict:
  return {"homeworkImage": ("homework.png", data, content_type)}


async def _drain(services) -> None:
  with anyio.fail_after(5):
    await services.queue.join()


@pytest.mark.anyio
async def test_submit_then_poll_until_completed(client, services, quota_store, auth_state, generator):
  response = await client.post("/api/homework/submit", files=_upload())

  assert response.status_code == 202
  body = response.json()
  assert body["message"] == "Homework submission accepted."
  job_id = body["jobId"]

  await _drain(services)
  status_response = await client.get(f"/api/homework/status/{job_id}")

  assert status_response.status_code == 200
  assert status_response.json() == {"status": "completed", "solution": "1. Add 2 and 3.\n2. The answer is **5**.", "failureReason": None}
  assert quota_store.used(auth_state["user"].id) == 15
  assert generator.calls[0]["image"].media_type == "image/png"


@pytest.mark.anyio
async def test_failed_job_reports_reason_without_charge(client, services, quota_store, auth_state, generator):
  generator.error = ProviderError("")

  job_id = (await client.post("/api/homework/submit", files=_upload())).json()["jobId"]
  await _drain(services)
  body = (await client.get(f"/api/homework/status/{job_id}")).json()

  assert body["status"] == "failed"
  assert body["solution"] is None
  assert body["failureReason"] == DEFAULT_FAILURE_REASON
  assert quota_store.used(auth_state["user"].id) == 0


@pytest.mark.anyio
async def test_status_is_private_to_the_submitter(client, services, auth_state, make_user):
  job_id = (await client.post("/api/homework/submit", files=_upload())).json()["jobId"]
  await _drain(services)

  auth_state["user"] = make_user()
  response = await client.get(f"/api/homework/status/{job_id}")

  assert response.status_code == 404
  assert response.json()["detail"] == "Job not found."


@pytest.mark.anyio
async def test_unknown_job_returns_404(client):
  response = await client.get("/api/homework/status/does-not-exist")

  assert response.status_code == 404


@pytest.mark.anyio
async def test_missing_image_returns_400(client, jobs_repo):
  response = await client.post("/api/homework/submit", data={"note": "forgot the picture"})

  assert response.status_code == 400
  assert response.json()["detail"] == "No image file uploaded."
  assert jobs_repo.jobs == {}


@pytest.mark.anyio
async def test_unsupported_type_returns_400(client, jobs_repo):
  response = await client.post("/api/homework/submit", files=_upload(b"%PDF-1.7", "application/pdf"))

  assert response.status_code == 400
  assert jobs_repo.jobs == {}


@pytest.mark.anyio
async def test_oversized_image_returns_400(client, jobs_repo):
  response = await client.post("/api/homework/submit", files=_upload(b"x" * 2048))

  assert response.status_code == 400
  assert "byte limit" in response.json()["detail"]
  assert jobs_repo.jobs == {}


@pytest.mark.anyio
async def test_insufficient_quota_returns_402(client, jobs_repo, auth_state, make_user):
  auth_state["user"] = make_user(used=990, limit=1000)

  response = await client.post("/api/homework/submit", files=_upload())

  assert response.status_code == 402
  assert response.json()["detail"] == "Insufficient quota. Please upgrade your plan."
  assert jobs_repo.jobs == {}
