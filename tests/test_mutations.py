import asyncio

from bs4 import BeautifulSoup
from conftest import make_document, make_row

from imgpreview.mutations import DocumentObserver, MutationRecord, PollingSource, has_unprocessed_candidate

ATTRS = {"image_attr": "data-preview-image", "processed_class": "processed"}


def test_candidate_filter():
    soup = BeautifulSoup(
        '<div><a data-preview-image="/a.jpg">A</a></div>'
        '<a class="processed" data-preview-image="/b.jpg">B</a>'
        "<a href='/c'>C</a>",
        "html.parser",
    )
    container, processed, plain = soup.contents

    assert has_unprocessed_candidate(container, **ATTRS)
    assert has_unprocessed_candidate(container.a, **ATTRS)
    assert not has_unprocessed_candidate(processed, **ATTRS)
    assert not has_unprocessed_candidate(plain, **ATTRS)


def test_candidate_filter_ignores_non_elements():
    soup = BeautifulSoup("text<!-- comment -->", "html.parser")
    for node in soup.contents:
        assert not has_unprocessed_candidate(node, **ATTRS)
    assert not has_unprocessed_candidate(None, **ATTRS)


def test_observer_insert_html_notifies_once_and_unsubscribes():
    doc = make_document()
    observer = DocumentObserver(doc)
    seen = []
    unsubscribe = observer.subscribe(seen.append)

    nodes = observer.insert_html(doc.select_one("#releases-table"), make_row("New") + make_row("Other"))

    assert len(nodes) == 2
    assert len(seen) == 1
    assert seen[0][0].added_nodes == tuple(nodes)
    assert len(doc.select("#releases-table tr")) == 2

    unsubscribe()
    observer.append_child(doc.body, doc.new_tag("p"))
    assert len(seen) == 1


def test_observer_contains_subscriber_errors():
    doc = make_document()
    observer = DocumentObserver(doc)
    seen = []

    def boom(_records):
        raise RuntimeError("bad subscriber")

    observer.subscribe(boom)
    observer.subscribe(seen.append)
    observer.notify([MutationRecord(target=None)])

    assert len(seen) == 1


def test_polling_source_reports_only_when_candidates_exist():
    doc = make_document(make_row("Poll"))
    seen = []
    source = PollingSource(doc, seen.append, interval=0.01, **ATTRS)

    assert source.poll_once() is True
    doc.a["class"] = ["processed"]
    assert source.poll_once() is False
    assert len(seen) == 1


def test_polling_source_runs_on_loop():
    doc = make_document(make_row("Poll"))
    seen = []

    async def scenario():
        source = PollingSource(doc, seen.append, interval=0.01, **ATTRS)
        source.start()
        await asyncio.sleep(0.05)
        source.stop()

    asyncio.run(scenario())
    assert len(seen) >= 1
