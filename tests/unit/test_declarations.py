from error_flow.block import Handler, Operation, ProtectedBlock
from error_flow.declarations import check_declarations, may_raise


def _op(name, declares):
    return Operation(name=name, action=lambda ctx: None, declares=declares)


def _handler(kinds):
    return Handler(kinds=kinds, body=lambda failure, ctx: None)


def test_unhandled_checked_kind_is_reported(registry):
    block = ProtectedBlock(name="main", operations=[_op("open", ["FileNotFound"])], registry=registry)
    problems = check_declarations(block)

    assert len(problems) == 1
    assert (problems[0].block, problems[0].operation, problems[0].kind) == ("main", "open", "FileNotFound")
    assert "checked kind 'FileNotFound'" in str(problems[0])


def test_unchecked_kinds_need_no_handler(registry):
    block = ProtectedBlock(operations=[_op("divide", ["DivisionByZero", "NullReference"])], registry=registry)
    assert check_declarations(block) == []


def test_handler_for_ancestor_covers_declaration(registry):
    block = ProtectedBlock(
        operations=[_op("open", ["FileNotFound"]), _op("query", ["SQLFailure"])],
        handlers=[_handler("IOFailure"), _handler("SQLFailure")],
        registry=registry,
    )
    assert check_declarations(block) == []


def test_block_declaration_covers_checked_kind(registry):
    block = ProtectedBlock(operations=[_op("open", ["FileNotFound"])], declares=["IOFailure"], registry=registry)
    assert check_declarations(block) == []


def test_custom_checked_kind(registry):
    registry.declare("InvalidAge")
    unhandled = ProtectedBlock(operations=[_op("validate", ["InvalidAge"])], registry=registry)
    handled = ProtectedBlock(
        operations=[_op("validate", ["InvalidAge"])],
        handlers=[_handler("InvalidAge")],
        registry=registry,
    )
    assert [problem.kind for problem in check_declarations(unhandled)] == ["InvalidAge"]
    assert check_declarations(handled) == []


def test_nested_block_passes_uncaught_kinds_outward(registry):
    inner = ProtectedBlock(
        name="inner",
        operations=[_op("open", ["FileNotFound"]), _op("query", ["SQLFailure"])],
        handlers=[_handler("SQLFailure")],
        registry=registry,
    )
    run_inner = Operation.run_block(inner)
    assert may_raise(run_inner) == {"FileNotFound"}

    outer = ProtectedBlock(name="outer", operations=[run_inner], registry=registry)
    problems = check_declarations(outer)
    assert [(p.block, p.operation, p.kind) for p in problems] == [("outer", "inner", "FileNotFound")]

    guarded = ProtectedBlock(name="outer", operations=[run_inner], handlers=[_handler("Failure")], registry=registry)
    assert check_declarations(guarded) == []


def test_handler_declarations_are_not_covered_by_sibling_handlers(registry):
    rethrowing = Handler(kinds=("IOFailure",), body=lambda failure, ctx: None, declares=["SQLFailure"])
    block = ProtectedBlock(
        name="main",
        operations=[_op("open", ["FileNotFound"])],
        handlers=[rethrowing, _handler("SQLFailure")],
        registry=registry,
    )
    problems = check_declarations(block)
    assert [(p.operation, p.kind) for p in problems] == [("handler 0", "SQLFailure")]

    declared = ProtectedBlock(
        operations=[_op("open", ["FileNotFound"])],
        handlers=[rethrowing],
        declares=["Failure"],
        registry=registry,
    )
    assert check_declarations(declared) == []


def test_nested_handler_declarations_escape_to_outer(registry):
    inner = ProtectedBlock(
        name="inner",
        operations=[_op("open", ["FileNotFound"])],
        handlers=[Handler(kinds=("IOFailure",), body=lambda failure, ctx: None, declares=["SQLFailure"])],
        registry=registry,
    )
    assert may_raise(Operation.run_block(inner)) == {"SQLFailure"}


def test_check_does_not_run_operations(registry):
    calls = []
    block = ProtectedBlock(
        operations=[Operation(name="side-effect", action=lambda ctx: calls.append("ran"), declares=["IOFailure"])],
        registry=registry,
    )
    check_declarations(block)
    assert calls == []
