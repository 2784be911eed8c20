"""Result values and their HTTP mapping."""

import pytest

from seodesk.common.result import ErrorKind, Result, http_status


class TestResult:
    def test_success(self):
        result = Result.success(3)
        assert result.ok
        assert result.value == 3
        assert result.error is None

    def test_not_found(self):
        result = Result.not_found("Site")
        assert not result.ok
        assert result.error == "Site not found"
        assert result.kind is ErrorKind.NOT_FOUND

    def test_fail_defaults_to_validation(self):
        assert Result.fail("bad").kind is ErrorKind.VALIDATION

    @pytest.mark.parametrize(
        "kind,status",
        [(ErrorKind.NOT_FOUND, 404), (ErrorKind.VALIDATION, 400), (ErrorKind.EXTERNAL, 502)],
    )
    def test_http_status(self, kind, status):
        assert http_status(Result.fail("x", kind)) == status
