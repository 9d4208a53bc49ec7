"""Unit tests for zip archives of generated documents."""
import io
import zipfile

from messagelab.archive import archive_name, write_archive
from messagelab.core.models import GeneratedDocument


class TestArchive:
    """Test archive creation."""

    def _documents(self):
        return [
            GeneratedDocument(name="order_1.xml", content=b"<a>1</a>"),
            GeneratedDocument(name="order_2.xml", content=b"<a>2</a>"),
        ]

    def test_archive_name(self):
        assert archive_name("order") == "order_generated.zip"

    def test_entries_in_order(self):
        data = write_archive(self._documents())
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert archive.namelist() == ["order_1.xml", "order_2.xml"]
            assert archive.read("order_2.xml") == b"<a>2</a>"
            assert archive.getinfo("order_1.xml").compress_type == zipfile.ZIP_DEFLATED

    def test_write_to_target(self, tmp_path):
        target = tmp_path / "out" / archive_name("order")
        data = write_archive(self._documents(), target)
        assert target.read_bytes() == data
