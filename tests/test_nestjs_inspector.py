import textwrap

from routedoc.extractors.nestjs.inspector import inspect_unit
from routedoc.extractors.nestjs.syntax import TypeScriptBackend


def unit_from(src: str):
    backend = TypeScriptBackend()
    return backend.build_unit(backend.parse_text(textwrap.dedent(src)))


def test_only_controller_classes_and_verb_methods():
    unit = unit_from(
        """
        import { Controller, Get, Post } from '@nestjs/common';

        @Injectable()
        export class UsersService {
          @Get()
          notARoute() {}
        }

        @Controller('users')
        export class UsersController {
          constructor(private readonly users: UsersService) {}

          @Get()
          findAll() {}

          @Post(':id/activate')
          activate() {}

          helper() {}
        }
        """
    )
    groups = inspect_unit(unit)
    assert len(groups) == 1
    g = groups[0]
    assert g.name == "UsersController"
    assert g.base_path == "/users"
    assert [(h.method.name, h.verb, h.path) for h in g.handlers] == [
        ("findAll", "GET", ""),
        ("activate", "POST", ":id/activate"),
    ]


def test_array_path_prefers_shortest_alternative():
    unit = unit_from(
        """
        @Controller(['short', '/api/edge/long/short'])
        export class ShortController {
          @Get()
          list() {}
        }
        """
    )
    assert inspect_unit(unit)[0].base_path == "/short"


def test_array_path_tie_keeps_first():
    unit = unit_from(
        """
        @Controller(['abc', 'xyz'])
        class TieController {}
        """
    )
    assert inspect_unit(unit)[0].base_path == "/abc"


def test_missing_and_object_path_arguments():
    unit = unit_from(
        """
        @Controller()
        export class RootController {}

        @Controller({ path: 'orders', version: '1' })
        export class OrdersController {}
        """
    )
    paths = {g.name: g.base_path for g in inspect_unit(unit)}
    assert paths == {"RootController": "", "OrdersController": "/orders"}


def test_parameters_carry_decorators_types_and_optionality():
    unit = unit_from(
        """
        interface ListQuery {
          page?: number;
          size: number;
        }

        @Controller('items')
        export class ItemsController {
          @Get(':id')
          findOne(
            @Param('id') id: string,
            @Query() query: ListQuery,
            @Query('q') @IsOptional() q: string,
            @Headers('x-trace') trace?: string,
          ) {}
        }
        """
    )
    handler = inspect_unit(unit)[0].handlers[0]
    params = {p.name: p for p in handler.method.params}

    assert params["id"].type.text == "string"
    assert params["id"].optional is False
    assert [a.name for a in params["id"].annotations] == ["Param"]

    members = params["query"].type.members
    assert [(m.name, m.type_text, m.optional) for m in members] == [
        ("page", "number", True),
        ("size", "number", False),
    ]

    assert params["q"].optional is True
    assert params["trace"].optional is True


def test_doc_comment_attached_to_method():
    unit = unit_from(
        """
        @Controller('docs')
        export class DocsController {
          /**
           * Lists docs.
           */
          @Get()
          list() {}

          @Get('plain')
          plain() {}
        }
        """
    )
    handlers = inspect_unit(unit)[0].handlers
    assert "Lists docs." in handlers[0].method.doc
    assert handlers[1].method.doc == ""
