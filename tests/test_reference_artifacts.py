"""
Reference Artifact Manager Tests
================================
Validation, limits and id handling for reference images.
"""
import base64
import pytest

from stylepilot.core.errors import ValidationError
from stylepilot.services.reference_artifacts import (
    ReferenceArtifactManager,
    to_data_url,
    validate_reference_file,
)


def _make_manager(max_bytes=1024, max_items=3):
    return ReferenceArtifactManager(max_bytes=max_bytes, max_items=max_items)


@pytest.mark.parametrize("mime_type", ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"])
def test_allowed_types(mime_type):
    validate_reference_file(mime_type, 10, max_bytes=100)


@pytest.mark.parametrize("mime_type", ["image/svg+xml", "text/plain", "application/pdf", ""])
def test_rejected_types(mime_type):
    with pytest.raises(ValidationError) as exc_info:
        validate_reference_file(mime_type, 10, max_bytes=100)
    assert exc_info.value.kind == "VALIDATION_ERROR"


def test_size_limit_is_inclusive():
    validate_reference_file("image/png", 100, max_bytes=100)
    with pytest.raises(ValidationError):
        validate_reference_file("image/png", 101, max_bytes=100)


def test_add_builds_data_url_and_unique_ids():
    manager = _make_manager()
    first = manager.add("a.png", b"abc", "IMAGE/PNG")
    second = manager.add("b.png", b"abc", "image/png")

    assert first.id != second.id
    assert first.id.startswith("ref_")
    assert first.mime_type == "image/png"
    assert first.size == 3
    assert first.url == "data:image/png;base64," + base64.b64encode(b"abc").decode()
    assert first.base64_payload == base64.b64encode(b"abc").decode()
    assert [a.name for a in manager.items] == ["a.png", "b.png"]


def test_rejected_add_leaves_list_unchanged():
    manager = _make_manager(max_bytes=4)
    manager.add("ok.png", b"1234", "image/png")

    with pytest.raises(ValidationError):
        manager.add("big.png", b"12345", "image/png")
    with pytest.raises(ValidationError):
        manager.add("doc.pdf", b"1", "application/pdf")

    assert len(manager.items) == 1


def test_max_items():
    manager = _make_manager(max_items=2)
    manager.add("1.png", b"1", "image/png")
    manager.add("2.png", b"2", "image/png")
    with pytest.raises(ValidationError):
        manager.add("3.png", b"3", "image/png")


def test_remove_and_get():
    manager = _make_manager()
    artifact = manager.add("a.gif", b"GIF89a", "image/gif")

    assert manager.get(artifact.id) is artifact
    assert manager.remove("ref_unknown") is None
    assert manager.remove(artifact.id) is artifact
    assert manager.items == ()
    assert manager.get(artifact.id) is None


def test_ids_are_not_reused_after_replace_all():
    manager = _make_manager()
    existing = manager.add("a.png", b"1", "image/png")
    manager.clear()
    manager.replace_all([existing])
    fresh = manager.add("b.png", b"2", "image/png")
    assert fresh.id != existing.id
    assert len(manager.items) == 2


def test_add_file(tmp_path):
    image = tmp_path / "hero.png"
    image.write_bytes(b"\x89PNG\r\n")
    manager = _make_manager()

    artifact = manager.add_file(str(image))

    assert artifact.name == "hero.png"
    assert artifact.mime_type == "image/png"
    assert artifact.data == b"\x89PNG\r\n"


def test_add_file_rejects_unknown_extension(tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("hello")
    with pytest.raises(ValidationError):
        _make_manager().add_file(str(notes))


def test_to_data_url():
    assert to_data_url(b"\x00", "image/png") == "data:image/png;base64,AA=="
