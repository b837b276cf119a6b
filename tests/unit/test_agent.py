"""
Unit tests for agent wiring.
"""

import asyncio
import os

import httpx
import pytest

from metrics_relay.agent import Agent, ensure_dirs
from metrics_relay.cancel import CancellationToken
from metrics_relay.config import parse_config
from metrics_relay.errors import StartupError


def test_ensure_dirs_creates_staging(tmp_path):
    cfg = parse_config(
        {"parameters": {"source-dir": str(tmp_path / "a" / "src"), "sink-dir": str(tmp_path / "snk")}}
    )
    ensure_dirs(cfg)
    assert (tmp_path / "a" / "src").is_dir()
    assert (tmp_path / "snk").is_dir()


def test_ensure_dirs_failure_is_startup_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    cfg = parse_config({"parameters": {"source-dir": str(blocker / "src")}})

    with pytest.raises(StartupError, match="source directory"):
        ensure_dirs(cfg)


def test_agent_builds_one_worker_per_component(make_config):
    cfg = make_config(
        sources=[{"name": "n1", "url": "http://a"}, {"name": "n2", "url": "http://b"}],
        sinks=[{"name": f"s{i}", "url": "http://warp/api/v0/update"} for i in (1, 2, 3)],
    )
    agent = Agent(cfg)

    assert len(agent.sources) == 2
    assert len(agent.sinks) == 3
    assert agent.router.scan_period == 50
    # one shared token
    assert all(w.token is agent.token for w in agent.sources + agent.sinks)
    assert agent.router.token is agent.token


@pytest.mark.asyncio
async def test_agent_routes_end_to_end_and_halts(make_config, source_dir, sink_dir, stage):
    """Staged file goes through router and uploader, then cancellation stops every worker."""
    stage("1.metrics", "1// foo{} 5\n")
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request.content.decode())
        return httpx.Response(200)

    cfg = make_config(labels={"env": "test"})
    token = CancellationToken()
    agent = Agent(cfg, token=token)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    for k in agent.sinks:
        k._client = client
        k._owns_client = False

    task = asyncio.create_task(agent.run())
    for _ in range(100):
        await asyncio.sleep(0.02)
        if received:
            break
    token.cancel()
    await asyncio.wait_for(task, timeout=2.0)
    await client.aclose()

    assert received == ["1// foo{env=test} 5\n"]
    assert os.listdir(source_dir) == []
    assert os.listdir(sink_dir) == []
