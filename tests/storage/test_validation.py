import pytest

from app.storage.exceptions import (
    ContentTypeMismatchError,
    FileSizeExceededError,
    UnsupportedContentTypeError,
)
from app.storage.validation import UploadPolicy, normalize_content_type, sniff_content_type
from tests.constants import ALLOWED_TYPES, MAX_SIZE_BYTES, PNG_SIGNATURE


@pytest.fixture
def policy():
    return UploadPolicy(max_size_bytes=MAX_SIZE_BYTES, allowed_types=ALLOWED_TYPES)


@pytest.fixture
def sniffing_policy():
    return UploadPolicy(
        max_size_bytes=MAX_SIZE_BYTES,
        allowed_types=ALLOWED_TYPES,
        sniff_content=True,
    )


class TestUploadPolicyCheck:
    """Declared size and type validation tests"""

    def test_valid_upload(self, policy):
        """Test a small PNG passes"""
        policy.check(1024, "image/png")

    def test_exactly_max_size_is_allowed(self, policy):
        """Test the limit itself is inclusive"""
        policy.check(MAX_SIZE_BYTES, "application/pdf")

    @pytest.mark.parametrize(
        "content_type",
        ["image/png", "video/mp4", "application/x-msdownload", "", None],
    )
    def test_size_exceeded_regardless_of_type(self, policy, content_type):
        """Test oversized uploads report size even when the type is also bad"""
        with pytest.raises(FileSizeExceededError) as exc:
            policy.check(MAX_SIZE_BYTES + 1, content_type)
        assert exc.value.max_size == MAX_SIZE_BYTES
        assert exc.value.file_size == MAX_SIZE_BYTES + 1

    @pytest.mark.parametrize(
        "content_type",
        ["application/x-msdownload", "text/html", "image/svg+xml", "", None],
    )
    def test_unsupported_type_even_when_empty(self, policy, content_type):
        """Test a disallowed type is rejected at size 0"""
        with pytest.raises(UnsupportedContentTypeError):
            policy.check(0, content_type)

    def test_type_parameters_and_case_are_ignored(self, policy):
        """Test 'Text/Plain; charset=utf-8' matches 'text/plain'"""
        policy.check(10, "Text/Plain; charset=utf-8")

    def test_narrow_allow_list(self):
        """Test a policy with a narrower allow-list rejects video"""
        narrow = UploadPolicy(
            max_size_bytes=MAX_SIZE_BYTES,
            allowed_types={"image/png", "application/pdf"},
        )
        with pytest.raises(UnsupportedContentTypeError):
            narrow.check(10, "video/mp4")

    def test_normalize_content_type(self):
        """Test MIME normalization"""
        assert normalize_content_type(" IMAGE/PNG ; q=1") == "image/png"
        assert normalize_content_type(None) == ""


class TestContentSniffing:
    """Leading-byte content checks"""

    @pytest.mark.parametrize(
        "head, family",
        [
            (PNG_SIGNATURE + b"rest", "png"),
            (b"\xff\xd8\xff\xe0rest", "jpeg"),
            (b"GIF89a....", "gif"),
            (b"%PDF-1.7\n", "pdf"),
            (b"\x00\x00\x00\x18ftypmp42", "mp4"),
            (b"\x1a\x45\xdf\xa3\x9f", "webm"),
            (b"PK\x03\x04\x14\x00", "zip"),
            (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1\x00", "ole2"),
            (b"hello world\n", "text"),
        ],
    )
    def test_sniff_known_families(self, head, family):
        """Test each known signature is recognised"""
        detected = sniff_content_type(head)
        assert detected is not None
        assert detected[0] == family

    def test_sniff_unknown_binary(self):
        """Test arbitrary binary is not recognised"""
        assert sniff_content_type(b"MZ\x90\x00\x03\x00") is None

    def test_sniffing_disabled_accepts_anything(self, policy):
        """Test declared type is trusted when sniffing is off"""
        policy.verify_content(b"MZ\x90\x00", "image/png")

    def test_matching_content(self, sniffing_policy):
        """Test a real PNG declared as PNG passes"""
        sniffing_policy.verify_content(PNG_SIGNATURE + b"\x00" * 16, "image/png")

    def test_mismatching_content(self, sniffing_policy):
        """Test an executable declared as PNG is rejected"""
        with pytest.raises(ContentTypeMismatchError) as exc:
            sniffing_policy.verify_content(b"MZ\x90\x00\x03\x00", "image/png")
        assert isinstance(exc.value, UnsupportedContentTypeError)
        assert exc.value.detected == "unknown"

    def test_office_family_accepts_both_types(self, sniffing_policy):
        """Test a ZIP container may be declared as DOCX or XLSX"""
        head = b"PK\x03\x04" + b"\x00" * 16
        sniffing_policy.verify_content(
            head,
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )
        sniffing_policy.verify_content(
            head,
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

    def test_text_with_nul_bytes_is_not_text(self, sniffing_policy):
        """Test binary declared as text/plain is rejected"""
        with pytest.raises(ContentTypeMismatchError):
            sniffing_policy.verify_content(b"abc\x00def", "text/plain")

    def test_type_without_signature_passes(self):
        """Test allowed types with no known signature are not sniffed"""
        policy = UploadPolicy(
            max_size_bytes=MAX_SIZE_BYTES,
            allowed_types={"application/json"},
            sniff_content=True,
        )
        policy.verify_content(b"\x00\x01", "application/json")
