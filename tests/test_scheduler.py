import asyncio

from bs4 import BeautifulSoup
from conftest import make_document, make_row

from imgpreview.mutations import MutationRecord
from imgpreview.scheduler import ChangeScheduler


def _candidate_record():
    soup = BeautifulSoup('<a data-preview-image="/x.jpg">X</a>', "html.parser")
    return MutationRecord(target=None, added_nodes=(soup.a,))


def test_burst_of_triggers_runs_one_rescan():
    calls = []

    async def scenario():
        sched = ChangeScheduler(lambda: calls.append("scan"), debounce_seconds=0.05)
        sched.on_mutations([_candidate_record()])
        await asyncio.sleep(0.01)
        sched.on_mutations([_candidate_record()])
        assert sched.state == "pending"
        await asyncio.sleep(0.15)
        return sched

    sched = asyncio.run(scenario())

    assert calls == ["scan"]
    assert sched.triggers == 2
    assert sched.rescans == 1
    assert sched.state == "idle"


def test_mutations_without_candidates_stay_idle():
    calls = []
    soup = BeautifulSoup("plain<span>no link</span>", "html.parser")

    async def scenario():
        sched = ChangeScheduler(lambda: calls.append("scan"), debounce_seconds=0.01)
        sched.on_mutations([MutationRecord(target=None, added_nodes=tuple(soup.contents))])
        sched.on_mutations([MutationRecord(target=None, added_nodes=(_candidate_record().added_nodes[0],), type="attributes")])
        await asyncio.sleep(0.05)
        return sched

    sched = asyncio.run(scenario())

    assert calls == []
    assert sched.state == "idle"


def test_failing_rescan_returns_to_idle():
    def boom():
        raise RuntimeError("scan exploded")

    async def scenario():
        sched = ChangeScheduler(boom, debounce_seconds=0.01)
        sched.trigger()
        await asyncio.sleep(0.05)
        return sched

    sched = asyncio.run(scenario())

    assert sched.rescans == 1
    assert sched.state == "idle"


def test_flush_and_close():
    calls = []

    async def scenario():
        sched = ChangeScheduler(lambda: calls.append("scan"), debounce_seconds=10)
        assert sched.flush() is False
        sched.trigger()
        assert sched.flush() is True
        sched.trigger()
        sched.close()
        await asyncio.sleep(0)
        return sched

    sched = asyncio.run(scenario())

    assert calls == ["scan"]
    assert sched.state == "idle"


def test_scheduler_drives_document_rescan():
    doc = make_document(make_row("Late - 01"))
    seen = []

    def rescan():
        seen.extend(a.get_text() for a in doc.select("a[data-preview-image]"))

    async def scenario():
        sched = ChangeScheduler(rescan, debounce_seconds=0.01)
        sched.trigger()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert seen == ["Late - 01"]
