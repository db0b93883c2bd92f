"""
Tests for the application container and its background tasks.
"""

import asyncio

import pytest

from walletchat.config.models import AppConfig, AuthConfig, RealtimeConfig
from walletchat.container import ApplicationContainer


def test_services_are_wired_from_config():
    config = AppConfig(
        auth=AuthConfig(nonce_ttl_seconds=120, max_pending_nonces=50, nonce_requests_per_minute=3),
        realtime=RealtimeConfig(max_messages_per_minute=7, max_dm_body_length=10),
    )

    container = ApplicationContainer(config)

    assert container.nonce_store.ttl.total_seconds() == 120
    assert container.nonce_store.max_pending == 50
    assert container.rate_limiter.max_nonce_requests == 3
    assert container.rate_limiter.max_messages_per_minute == 7
    manager = container.connection_manager
    assert manager.max_dm_body_length == 10
    assert manager.session_registry is container.session_registry
    assert manager.chat_membership is container.chat_membership
    assert manager.nonce_store is container.nonce_store


@pytest.mark.asyncio
async def test_initialize_starts_background_tasks_and_shutdown_cancels_them():
    container = ApplicationContainer(AppConfig())

    await container.initialize()
    try:
        assert container.is_initialized()
        tasks = [container._sweep_task, container._cleanup_task]
        assert [task.get_name() for task in tasks] == ["nonce-sweep", "rate-limit-cleanup"]
        await asyncio.sleep(0)
        assert not any(task.done() for task in tasks)
    finally:
        await container.shutdown()

    assert not container.is_initialized()
    assert all(task.cancelled() for task in tasks)


@pytest.mark.asyncio
async def test_initialize_twice_keeps_one_task():
    container = ApplicationContainer(AppConfig())

    await container.initialize()
    first = container._sweep_task
    await container.initialize()
    try:
        assert container._sweep_task is first
    finally:
        await container.shutdown()
