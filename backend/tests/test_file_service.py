"""
ClimbTime Backend - File Service Unit Tests
=============================================

What:  FileService validation, storage layout and path resolution.
How:   Each test gets a FileService rooted in its own temporary directory.
"""

from pathlib import Path

import pytest

from climbtime.config import settings
from climbtime.exceptions import NotFoundError, ValidationError
from climbtime.services.file_service import PUBLIC_PREFIX, FileService


@pytest.fixture
def service(temp_storage):
    return FileService(storage_root=temp_storage)


class TestFileValidation:

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["photo.jpg", "photo.jpeg", "photo.png", "photo.JPG", "photo.Png"])
    def test_allowed_extensions(self, service, filename):
        assert service.validate_extension(filename) == Path(filename).suffix.lower()

    @pytest.mark.parametrize("filename", ["animation.gif", "doc.pdf", "malware.exe", "noextension"])
    def test_rejected_extensions(self, service, filename):
        with pytest.raises(ValidationError, match="not supported"):
            service.validate_extension(filename)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_at_limit_passes(self, service):
        service.validate_size(settings.max_file_size)

    def test_size_over_limit_rejected(self, service):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            service.validate_size(settings.max_file_size + 1)

    def test_empty_file_rejected(self, service):
        with pytest.raises(ValidationError, match="empty"):
            service.validate_size(0)

    # ── Content Type ──────────────────────────────────────────────────────

    def test_image_content_types_accepted(self, service):
        service.validate_content_type("image/png")
        service.validate_content_type("image/jpeg; charset=binary")
        service.validate_content_type(None)

    def test_non_image_content_type_rejected(self, service):
        with pytest.raises(ValidationError, match="content type"):
            service.validate_content_type("application/pdf")


class TestFileStorage:

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_date_directory(self, service, temp_storage, sample_image_bytes):
        """Files land in <category>/YYYY/MM/DD/<uuid>.<ext> and get a public URL."""
        absolute_path, url = await service.validate_and_store(
            filename="me.JPG",
            content=sample_image_bytes,
            content_type="image/jpeg",
            category="profile",
        )

        stored = Path(absolute_path)
        assert stored.read_bytes() == sample_image_bytes
        assert stored.suffix == ".jpg"
        relative = stored.relative_to(Path(temp_storage).resolve())
        assert relative.parts[0] == "profile"
        assert len(relative.parts) == 5
        assert url == f"{PUBLIC_PREFIX}{relative.as_posix()}"

    @pytest.mark.asyncio
    async def test_validate_and_store_rejects_before_writing(self, service, temp_storage):
        with pytest.raises(ValidationError):
            await service.validate_and_store("notes.txt", b"text", "text/plain", "banner")
        assert not any(Path(temp_storage).rglob("*.*"))

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self, service, tmp_path):
        test_file = tmp_path / "test.jpg"
        test_file.write_bytes(b"test content")

        await service.cleanup_file(str(test_file))
        assert not test_file.exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, service, tmp_path):
        """A missing file is not an error."""
        await service.cleanup_file(str(tmp_path / "nonexistent.jpg"))


class TestFileResolution:

    @pytest.mark.asyncio
    async def test_resolve_stored_file(self, service, sample_image_bytes):
        absolute_path, url = await service.validate_and_store(
            "banner.png", sample_image_bytes, "image/png", "banner"
        )
        resolved = service.resolve(url[len(PUBLIC_PREFIX):])
        assert resolved == Path(absolute_path).resolve()

    def test_resolve_rejects_traversal(self, service):
        with pytest.raises(ValidationError, match="Invalid file path"):
            service.resolve("../../etc/passwd")

    def test_resolve_missing_file(self, service):
        with pytest.raises(NotFoundError):
            service.resolve("profile/2024/01/01/missing.png")
