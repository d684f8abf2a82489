import pytest

from mediagate.core.errors import NotFoundError
from mediagate.models.enums import Provider, TaskKind, TaskStatus
from mediagate.services import tasks as ledger
from mediagate.services.task_status import extract_progress, initial_status, map_provider_status

OWNER = "aaaaaaaaaaaaaaaaaaaaaaaa"
OTHER = "bbbbbbbbbbbbbbbbbbbbbbbb"


async def _task(session, external_id="T1", provider=Provider.SORA, user_id=OWNER, response=None):
    return await ledger.create_task(
        session,
        user_id=user_id,
        external_id=external_id,
        provider=provider,
        model="sora-2",
        prompt="a cat surfing",
        params={"seconds": 10},
        response=response if response is not None else {"id": external_id, "status": "queued"},
    )


async def test_create_task_seeds_queued_record(session):
    task = await _task(session)

    assert task.status == TaskStatus.QUEUED.value
    assert task.progress == 0
    assert task.kind == TaskKind.VIDEO.value
    assert task.params == {"seconds": 10}


async def test_create_task_adopts_processing_status(session):
    task = await _task(session, response={"id": "T1", "status": "in_progress", "progress": 12})

    assert task.status == TaskStatus.PROCESSING.value
    assert task.progress == 12


async def test_reconcile_completes_task(session):
    await _task(session)

    task = await ledger.reconcile(
        session, OWNER, "T1", Provider.SORA, {"id": "T1", "status": "completed", "video_url": "https://cdn/v.mp4"}
    )

    assert task.status == TaskStatus.COMPLETED.value
    assert task.progress == 100
    assert task.asset_urls == ["https://cdn/v.mp4"]


async def test_reconcile_records_failure_message(session):
    await _task(session)

    task = await ledger.reconcile(
        session, OWNER, "T1", Provider.SORA, {"status": "failed", "error": {"message": "content policy"}}
    )

    assert task.status == TaskStatus.FAILED.value
    assert task.error == "content policy"


async def test_terminal_task_is_not_changed(session):
    await _task(session)
    await ledger.reconcile(session, OWNER, "T1", Provider.SORA, {"status": "completed", "video_url": "https://cdn/v.mp4"})

    task = await ledger.reconcile(session, OWNER, "T1", Provider.SORA, {"status": "failed", "error": "late"})

    assert task.status == TaskStatus.COMPLETED.value
    assert task.error is None


async def test_unmapped_status_becomes_unknown(session):
    await _task(session)

    task = await ledger.reconcile(session, OWNER, "T1", Provider.SORA, {"status": "warming_up"})

    assert task.status == TaskStatus.UNKNOWN.value


async def test_processing_never_returns_to_queued(session):
    await _task(session, response={"status": "processing", "progress": 40})

    task = await ledger.reconcile(session, OWNER, "T1", Provider.SORA, {"status": "queued"})

    assert task.status == TaskStatus.PROCESSING.value


async def test_reconcile_ignores_other_users_tasks(session):
    await _task(session)

    assert await ledger.reconcile(session, OTHER, "T1", Provider.SORA, {"status": "completed"}) is None
    assert (await ledger.get_task(session, "T1")).status == TaskStatus.QUEUED.value


async def test_list_tasks_filters_and_pages(session):
    await _task(session, "S1")
    await _task(session, "S2", response={"status": "completed", "video_url": "https://cdn/2.mp4"})
    await _task(session, "V1", provider=Provider.VEO)
    await _task(session, "G1", provider=Provider.GEMINI_IMAGE, response={"status": "processing"})
    await _task(session, "X1", user_id=OTHER)

    everything, total = await ledger.list_tasks(session, OWNER, offset=0, limit=10)
    assert total == 4
    assert {task.external_id for task in everything} == {"S1", "S2", "V1", "G1"}

    sora, total = await ledger.list_tasks(session, OWNER, offset=0, limit=10, provider=Provider.SORA)
    assert total == 2 and {task.external_id for task in sora} == {"S1", "S2"}

    images, _ = await ledger.list_tasks(session, OWNER, offset=0, limit=10, kind=TaskKind.IMAGE)
    assert [task.external_id for task in images] == ["G1"]

    completed, _ = await ledger.list_tasks(session, OWNER, offset=0, limit=10, status=TaskStatus.COMPLETED)
    assert [task.external_id for task in completed] == ["S2"]

    page, total = await ledger.list_tasks(session, OWNER, offset=2, limit=3)
    assert total == 4 and len(page) == 2


async def test_delete_is_scoped_to_owner(session):
    await _task(session)

    assert not await ledger.delete_task(session, OTHER, "T1")
    assert await ledger.delete_task(session, OWNER, "T1")
    assert await ledger.get_task(session, "T1") is None


async def test_delete_completed_keeps_active_tasks(session):
    await _task(session, "A")
    await _task(session, "B", response={"status": "completed"})
    await _task(session, "C", response={"status": "completed"})
    await _task(session, "D", user_id=OTHER, response={"status": "completed"})

    assert await ledger.delete_completed(session, OWNER) == 2
    assert await ledger.get_task(session, "A") is not None
    assert await ledger.get_task(session, "D") is not None


async def test_update_by_external_id(session):
    await _task(session)

    task = await ledger.update_by_external_id(session, "T1", status=TaskStatus.FAILED.value, error="timeout")

    assert task.status == "failed" and task.error == "timeout"
    with pytest.raises(NotFoundError):
        await ledger.update_by_external_id(session, "missing", status="failed")


async def test_get_user_task_hides_foreign_tasks(session):
    await _task(session)

    with pytest.raises(NotFoundError):
        await ledger.get_user_task(session, OTHER, "T1")


@pytest.mark.parametrize(
    ("provider", "raw", "expected"),
    [
        (Provider.SORA, "completed", TaskStatus.COMPLETED),
        (Provider.SORA, " IN_PROGRESS ", TaskStatus.PROCESSING),
        (Provider.VEO, "success", TaskStatus.COMPLETED),
        (Provider.VEO, "expired", TaskStatus.FAILED),
        (Provider.GROK, "moderated", TaskStatus.FAILED),
        (Provider.GROK, "generating", TaskStatus.PROCESSING),
        (Provider.GROK, "mystery", TaskStatus.UNKNOWN),
        (Provider.SORA, None, TaskStatus.UNKNOWN),
    ],
)
def test_map_provider_status(provider, raw, expected):
    assert map_provider_status(provider, raw) is expected


def test_initial_status_defaults_to_queued():
    assert initial_status(Provider.SORA, {"status": "weird"}) is TaskStatus.QUEUED
    assert initial_status(Provider.SORA, None) is TaskStatus.QUEUED


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (35, 35),
        ("42%", 42),
        ("7.9", 7),
        (250, 100),
        (0, 50),
        ("n/a", 50),
        (None, 50),
        (1e999, 50),
        ("1e999", 50),
        (float("nan"), 50),
        (10**400, 50),
    ],
)
def test_extract_progress(raw, expected):
    assert extract_progress({"progress": raw}, 50) == expected
