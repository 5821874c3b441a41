from pathlib import Path
import json
import textwrap

import pytest

from routedoc.errors import InvalidTargetError
from routedoc.orchestrator.pipeline import run_extract, run_import


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


CONTROLLERS = {
    "users/users.controller.ts": """
        @Controller('users')
        export class UsersController {
          @Get()
          list() {}

          @Get(':id')
          one(@Param('id') id: string) {}
        }
        """,
    "orders/orders.controller.ts": """
        @Controller('orders')
        export class OrdersController {
          @Post()
          create() {}
        }
        """,
}


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    for rel, src in CONTROLLERS.items():
        write(tmp_path / rel, src)
    return tmp_path


def test_run_extract_directory_mode(repo: Path):
    result = run_extract(repo)
    assert result.mode == "directory"
    assert result.total_endpoints == 3
    assert {e.path for e in result.collection.endpoints} == {"/users", "/users/{id}", "/orders"}


def test_run_extract_file_mode(repo: Path):
    result = run_extract(repo / "orders" / "orders.controller.ts", title="Orders", version="0.1.0")
    assert result.mode == "file"
    assert result.collection.title == "Orders"
    assert result.collection.version == "0.1.0"
    assert [e.operation_id for e in result.collection.endpoints] == ["create"]


def test_run_extract_filters_and_base_url(repo: Path):
    result = run_extract(repo, tags=["users"], paths=["/users/*"], base_url="https://x.test")
    assert result.total_endpoints == 3
    assert [e.path for e in result.collection.endpoints] == ["/users/{id}"]
    assert result.collection.base_url == "https://x.test"
    # tag list is not narrowed by endpoint filters
    assert [t.name for t in result.collection.tags] == ["orders", "users"]


def test_run_extract_missing_target(tmp_path: Path):
    with pytest.raises(InvalidTargetError):
        run_extract(tmp_path / "nope")


def test_run_import_reads_openapi_document(tmp_path: Path):
    doc = tmp_path / "openapi.json"
    doc.write_text(
        json.dumps(
            {
                "openapi": "3.0.0",
                "info": {"title": "Docs", "version": "1.0.0"},
                "servers": [{"url": "https://docs.test"}],
                "paths": {
                    "/a": {"get": {"tags": ["a"], "responses": {"200": {"description": "ok"}}}},
                    "/b": {"get": {"tags": ["b"], "responses": {"200": {"description": "ok"}}}},
                },
            }
        ),
        encoding="utf-8",
    )

    result = run_import(doc, version="9.9.9", tags=["b"])
    assert result.mode == "openapi"
    assert result.total_endpoints == 2
    assert result.collection.version == "9.9.9"
    assert result.collection.title == "Docs"
    assert result.collection.base_url == "https://docs.test"
    assert [e.path for e in result.collection.endpoints] == ["/b"]


def test_run_import_requires_a_file(tmp_path: Path):
    with pytest.raises(InvalidTargetError):
        run_import(tmp_path)
