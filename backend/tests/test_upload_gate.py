"""
Merit Badge Counselor Backend — Upload Gate Unit Tests
=======================================================

What:  Tests for UploadGate batch policy, naming, staging and promotion.
Why:   The gate is the security boundary for uploaded files, and the only
       thing keeping files of failed submissions off the disk.
How:   In-memory UploadFile objects and a temporary upload directory.

Test Strategy:
    ✅ Denylisted extensions rejected (case-insensitive), others accepted
    ✅ More than MAX_FILES rejected, empty parts not counted
    ✅ Total size ceiling on declared sizes and on streamed bytes
    ✅ Stored name format and sanitization
    ✅ stage → promote / stage → discard leave the expected files
"""

import re

import pytest

from conftest import make_upload
from counselor.exceptions import UploadRejectedError
from counselor.services.upload_gate import (
    FORBIDDEN_EXTENSIONS,
    MAX_SANITIZED_LENGTH,
    UploadGate,
)

STORED_NAME = re.compile(r"^\d{13}-\d{9}-(?P<original>.+)$")


def files_in(directory):
    return sorted(p.name for p in directory.iterdir() if p.is_file())


class TestExtensionPolicy:
    """Tests for the executable/script denylist."""

    def setup_method(self):
        self.gate = UploadGate(upload_dir="unused")

    @pytest.mark.parametrize("ext", sorted(FORBIDDEN_EXTENSIONS))
    def test_denylisted_extension_rejected(self, ext):
        with pytest.raises(UploadRejectedError, match="not allowed for security reasons"):
            self.gate.validate_extension(f"payload{ext}")

    def test_extension_check_is_case_insensitive(self):
        with pytest.raises(UploadRejectedError) as exc_info:
            self.gate.validate_extension("SETUP.EXE")
        assert exc_info.value.message == "File type .exe is not allowed for security reasons"

    def test_documents_and_images_accepted(self):
        assert self.gate.validate_extension("card.pdf") == ".pdf"
        assert self.gate.validate_extension("resume.DOCX") == ".docx"
        assert self.gate.validate_extension("cpr.jpg") == ".jpg"

    def test_only_last_suffix_matters(self):
        assert self.gate.validate_extension("notes.sh.txt") == ".txt"
        with pytest.raises(UploadRejectedError):
            self.gate.validate_extension("notes.txt.sh")

    def test_no_extension_accepted(self):
        assert self.gate.validate_extension("README") == ""


class TestBatchLimits:
    """Tests for the file count and total size ceilings."""

    def setup_method(self):
        self.gate = UploadGate(upload_dir="unused", max_files=10, max_total_size=31_457_280)

    def test_ten_files_accepted(self):
        uploads = [make_upload(f"card{i}.pdf") for i in range(10)]
        self.gate.check(uploads)

    def test_eleven_files_rejected(self):
        uploads = [make_upload(f"card{i}.pdf") for i in range(11)]
        with pytest.raises(UploadRejectedError) as exc_info:
            self.gate.check(uploads)
        assert exc_info.value.message == "Too many files. Maximum 10 files allowed."

    def test_empty_parts_are_not_uploads(self):
        uploads = [make_upload(""), make_upload("card.pdf"), make_upload(None)]
        kept = UploadGate.filter_uploads(uploads)
        assert [u.filename for u in kept] == ["card.pdf"]
        assert UploadGate.filter_uploads(None) == []

    def test_total_at_limit_accepted(self):
        uploads = [
            make_upload("a.pdf", size=15_728_640),
            make_upload("b.pdf", size=15_728_640),
        ]
        self.gate.check(uploads)

    def test_total_over_limit_rejected(self):
        """Each file alone is fine; the sum is what counts."""
        uploads = [
            make_upload("a.pdf", size=15_728_640),
            make_upload("b.pdf", size=15_728_641),
        ]
        with pytest.raises(UploadRejectedError, match="exceeds the maximum limit of 30 MB"):
            self.gate.check(uploads)

    def test_declared_size_falls_back_to_file_length(self):
        upload = make_upload("a.pdf", content=b"abcdef")
        upload.size = None
        assert UploadGate.declared_size(upload) == 6
        assert upload.file.tell() == 0

    def test_upload_rejected_error_carries_field_entry(self):
        uploads = [make_upload("virus.bat")]
        with pytest.raises(UploadRejectedError) as exc_info:
            self.gate.check(uploads)
        assert exc_info.value.errors == [
            {
                "msg": "File type .bat is not allowed for security reasons",
                "param": "certifications",
                "location": "body",
            }
        ]


class TestNaming:
    """Tests for stored name generation and sanitization."""

    def test_sanitize_strips_directories(self):
        assert UploadGate.sanitize_filename("../../etc/passwd") == "passwd"
        assert UploadGate.sanitize_filename("C:\\Users\\jo\\cpr.pdf") == "cpr.pdf"

    def test_sanitize_replaces_unsafe_characters(self):
        assert UploadGate.sanitize_filename("my card (1).pdf") == "my_card__1_.pdf"

    def test_sanitize_never_returns_hidden_or_empty_name(self):
        assert UploadGate.sanitize_filename(".bashrc") == "bashrc"
        assert UploadGate.sanitize_filename("") == "upload"

    def test_sanitize_caps_length_and_keeps_extension(self):
        cleaned = UploadGate.sanitize_filename("b" * 400 + ".docx")
        assert len(cleaned) == MAX_SANITIZED_LENGTH
        assert cleaned.endswith(".docx")

    def test_long_suffix_is_not_kept_as_extension(self):
        cleaned = UploadGate.sanitize_filename("card." + "x" * 300)
        assert len(cleaned) == MAX_SANITIZED_LENGTH
        assert cleaned.startswith("card")

    def test_original_name_fits_column(self):
        name = "Lifeguard certificate " * 20 + ".pdf"
        recorded = UploadGate.original_name(name)
        assert len(recorded) == 255
        assert recorded.endswith(".pdf")
        assert UploadGate.original_name("cpr.pdf") == "cpr.pdf"

    def test_generated_names_are_unique(self, upload_gate):
        names = {upload_gate._generate_stored_name("card.pdf") for _ in range(50)}
        assert len(names) == 50
        for name in names:
            assert STORED_NAME.match(name).group("original") == "card.pdf"


class TestStaging:
    """Tests for the disk phases: stage, promote, discard."""

    @pytest.mark.asyncio
    async def test_stage_then_promote(self, upload_gate, upload_dir):
        uploads = [
            make_upload("First Aid card.pdf", b"first aid"),
            make_upload("swim.jpg", b"swimming"),
        ]
        stored = await upload_gate.stage(uploads)

        assert [s.filename for s in stored] == ["First Aid card.pdf", "swim.jpg"]
        assert [s.size for s in stored] == [9, 8]
        assert files_in(upload_dir) == []
        assert len(files_in(upload_gate.staging_dir)) == 2

        await upload_gate.promote(stored)

        assert files_in(upload_gate.staging_dir) == []
        for s in stored:
            final = upload_dir / s.filepath.rsplit("/", 1)[-1]
            assert final.exists()
        assert STORED_NAME.match(stored[0].filepath.rsplit("/", 1)[-1]).group("original") == (
            "First_Aid_card.pdf"
        )

    @pytest.mark.asyncio
    async def test_very_long_filename_is_staged(self, upload_gate, upload_dir):
        long_name = "a" * 246 + ".pdf"
        stored = await upload_gate.stage([make_upload(long_name, b"card")])

        assert stored[0].filename == long_name
        staged_name = stored[0].staged_path.rsplit("/", 1)[-1]
        assert len(staged_name.encode()) <= 255
        assert staged_name.endswith(".pdf")

        await upload_gate.promote(stored)
        assert (upload_dir / staged_name).read_bytes() == b"card"

    @pytest.mark.asyncio
    async def test_discard_removes_staged_files(self, upload_gate, upload_dir):
        stored = await upload_gate.stage([make_upload("card.pdf")])
        await upload_gate.discard(stored)

        assert files_in(upload_gate.staging_dir) == []
        assert files_in(upload_dir) == []

    @pytest.mark.asyncio
    async def test_rejected_batch_writes_nothing(self, upload_gate, upload_dir):
        uploads = [make_upload("card.pdf"), make_upload("install.sh", b"rm -rf /")]
        with pytest.raises(UploadRejectedError):
            await upload_gate.stage(uploads)
        assert not upload_gate.staging_dir.exists()
        assert files_in(upload_dir) == []

    @pytest.mark.asyncio
    async def test_understated_size_caught_while_streaming(self, upload_dir):
        gate = UploadGate(upload_dir=str(upload_dir), max_total_size=100)
        uploads = [
            make_upload("a.pdf", b"x" * 60),
            make_upload("b.pdf", b"y" * 60, size=1),
        ]
        with pytest.raises(UploadRejectedError, match="exceeds the maximum limit"):
            await gate.stage(uploads)
        assert files_in(gate.staging_dir) == []

    @pytest.mark.asyncio
    async def test_stage_nothing(self, upload_gate):
        assert await upload_gate.stage([]) == []
        await upload_gate.promote([])

    @pytest.mark.asyncio
    async def test_cleanup_missing_file_is_silent(self, upload_gate, upload_dir):
        await upload_gate.cleanup_file(str(upload_dir / "never-existed.pdf"))
