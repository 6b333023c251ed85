import json

import pytest

from catalog_server.app.adapters.pullers.jsonl_puller import JsonlPuller
import catalog_server.app.adapters.pullers.jsonl_puller as jsonl_puller_module
from catalog_server.app.platform.exceptions import PermissionDenied, ResourceNotFound


def _write(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _doc(i):
    return json.dumps({
        "unique_id": f"product_{i}",
        "object_id": i,
        "object_type": "product",
        "fields": [{"name": "brand", "value": "Acme", "type": "string"}],
    })


def test_reads_documents_in_order(tmp_path):
    path = _write(tmp_path / "docs.jsonl", [_doc(1), "", _doc(2)])

    docs = list(JsonlPuller(str(path)))

    assert [d.unique_id for d in docs] == ["product_1", "product_2"]
    assert docs[0].get_field("brand").value == "Acme"


def test_file_uri_prefix(tmp_path):
    path = _write(tmp_path / "docs.jsonl", [_doc(1)])

    puller = JsonlPuller(f"file://{path}")

    assert puller.path == path.resolve()
    assert len(list(puller)) == 1


def test_invalid_lines_are_skipped_and_counted(tmp_path):
    path = _write(tmp_path / "docs.jsonl", [
        _doc(1),
        "{not json",
        json.dumps([1, 2, 3]),
        json.dumps({"unique_id": "x", "fields": [{"value": "no name"}]}),
        _doc(2),
    ])
    invalid = []

    puller = JsonlPuller(str(path), on_invalid=lambda line_no, err: invalid.append(line_no))
    docs = list(puller)

    assert [d.unique_id for d in docs] == ["product_1", "product_2"]
    assert puller.invalid_lines == 3
    assert invalid == [2, 3, 4]


def test_missing_file_raises(tmp_path):
    puller = JsonlPuller(str(tmp_path / "nope.jsonl"))
    with pytest.raises(ResourceNotFound):
        list(puller)


def test_reading_is_lazy(tmp_path):
    """순회 전에는 파일을 열지 않는다."""
    path = tmp_path / "later.jsonl"
    puller = JsonlPuller(str(path))
    _write(path, [_doc(1)])

    assert [d.unique_id for d in puller] == ["product_1"]


def test_unreadable_file_raises_permission_denied(tmp_path, monkeypatch):
    path = _write(tmp_path / "locked.jsonl", [_doc(1)])

    def deny(*args, **kwargs):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(jsonl_puller_module, "open", deny, raising=False)

    with pytest.raises(PermissionDenied):
        list(JsonlPuller(str(path)))


def test_base_dir_resolves_relative_paths(tmp_path):
    _write(tmp_path / "docs.jsonl", [_doc(1)])

    puller = JsonlPuller("docs.jsonl", base_dir=tmp_path)

    assert puller.path == (tmp_path / "docs.jsonl").resolve()
    assert [d.unique_id for d in puller] == ["product_1"]


@pytest.mark.parametrize("uri", ["../outside.jsonl", "/etc/passwd", "file:///etc/hosts"])
def test_paths_outside_base_dir_are_rejected(tmp_path, uri):
    root = tmp_path / "root"
    root.mkdir()
    with pytest.raises(PermissionDenied):
        JsonlPuller(uri, base_dir=root)
