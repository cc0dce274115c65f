"""Context handoff cost: plain tags vs unique reclamation vs deep copy.

Run with:
    pytest benchmarks/test_benchmark_handoff.py -v --benchmark-only

The unique path should cost about the same regardless of context size; the
copying path grows with it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from tessera import Context, ContextHandle, ContextSlot, Environment, reclaim

if TYPE_CHECKING:
    from pytest_benchmark.fixture import BenchmarkFixture


LOOP = "{% for item in items %}{% TAG %}{{ item.name }}{% end %}"


@pytest.mark.benchmark(group="handoff:render")
@pytest.mark.parametrize("tag", ["plain 'x'", "stamp", "keep"])
def test_render_with_tag_in_loop(
    benchmark: BenchmarkFixture,
    bench_env: Environment,
    medium_context: dict[str, Any],
    tag: str,
) -> None:
    tmpl = bench_env.from_string(LOOP.replace("TAG", tag))
    result = benchmark(tmpl.render, medium_context)
    assert "Item 99" in result


@pytest.mark.benchmark(group="handoff:reclaim")
def test_reclaim_unique(benchmark: BenchmarkFixture, medium_context: dict[str, Any]) -> None:
    ctx = Context(medium_context)

    def run() -> Context:
        return reclaim(ContextHandle.wrap(ctx)).context

    assert benchmark(run) is ctx


@pytest.mark.benchmark(group="handoff:reclaim")
def test_reclaim_deep_copy(benchmark: BenchmarkFixture, medium_context: dict[str, Any]) -> None:
    ctx = Context(medium_context)

    def run() -> Context:
        handle = ContextHandle.wrap(ctx)
        kept = handle.duplicate()
        result = reclaim(handle).context
        kept.release()
        return result

    assert benchmark(run) == ctx


@pytest.mark.benchmark(group="handoff:slot")
def test_render_slot_reuse(
    benchmark: BenchmarkFixture, bench_env: Environment, medium_context: dict[str, Any]
) -> None:
    tmpl = bench_env.from_string("{% stamp %}{{ stamped }}")
    slot = ContextSlot(Context(medium_context))
    assert benchmark(tmpl.render_slot, slot) == "UTC"
