"""
Tests for use cases — exec and info result objects.
"""

import pytest

from shivvie.core.use_cases.exec import ExecResult, run_exec
from shivvie.core.use_cases.info import InfoResult, get_info


class TestRunExec:
    @pytest.mark.asyncio
    async def test_success(self, tmp_path, hello_module, toolchain):
        result = await run_exec(str(hello_module), tmp_path / "out", {"name": "demo"}, toolchain=toolchain)
        assert result.ok
        assert result.module_dir == hello_module.resolve()
        assert result.report.applied == 2
        assert result.to_dict()["report"]["total"] == 2

    @pytest.mark.asyncio
    async def test_gh_module(self, tmp_path, hello_module, toolchain, git):
        git.repos["acme/templates"] = hello_module.parent
        result = await run_exec("gh:acme/templates/hello", tmp_path / "out", {"name": "gh"}, toolchain=toolchain)
        assert result.ok, result.error
        assert (tmp_path / "out" / "README.md").read_text() == "# gh\n"

    @pytest.mark.asyncio
    async def test_invalid_input_captured(self, tmp_path, hello_module, toolchain):
        result = await run_exec(str(hello_module), tmp_path / "out", {}, toolchain=toolchain)
        assert not result.ok
        assert result.error_type == "InvalidInputError"
        assert result.validation_errors
        assert "report" not in result.to_dict()

    @pytest.mark.asyncio
    async def test_resolve_error_captured(self, tmp_path, toolchain):
        result = await run_exec("gh:acme", tmp_path / "out", toolchain=toolchain)
        assert result.error_type == "InvalidUriError"
        assert result.module_dir is None

    def test_default_result(self):
        assert ExecResult().ok


class TestGetInfo:
    @pytest.mark.asyncio
    async def test_schema(self, hello_module, toolchain):
        result = await get_info(str(hello_module), toolchain=toolchain)
        assert result.error is None
        assert result.fields == [("name", "string", True), ("private", "boolean", False)]

    @pytest.mark.asyncio
    async def test_missing(self, tmp_path, toolchain):
        result = await get_info(str(tmp_path / "nope"), toolchain=toolchain)
        assert result.error
        assert result.to_dict() == {"module_ref": str(tmp_path / "nope"), "error": result.error}

    def test_optional_union_field(self):
        result = InfoResult(
            input_schema={
                "properties": {"license": {"anyOf": [{"type": "string"}, {"type": "null"}]}},
            }
        )
        assert result.fields == [("license", "string | null", False)]
