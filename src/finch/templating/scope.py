"""Name resolution for template code.

Interpolations and ``script[template]`` bodies are plain Python. Before
they are compiled, their free names are rewritten to look up the render
data, and attribute reads go through the dict-aware getter::

    user.name          ->  _getattr(_lookup(data, 'user'), 'name')
    items[0]           ->  _lookup(data, 'items')[0]
    for i in items: .. ->  for i in _lookup(data, 'items'): ..

Names bound by the code itself (assignments, loop targets, function
parameters, imports) and names in the reserved set (runtime helpers,
shared ``script[static]`` definitions, fragment functions) are left
alone. Builtins are not reserved: ``_lookup`` falls back to them when the
data does not define the name.
"""

import ast
from collections.abc import Collection


def bound_names(tree: ast.AST) -> set[str]:
    """Return every name *tree* binds anywhere in its body."""
    names: set[str] = set()
    for node in ast.walk(tree):
        match node:
            case ast.Name(id=name, ctx=ast.Store() | ast.Del()):
                names.add(name)
            case ast.arg(arg=name):
                names.add(name)
            case ast.FunctionDef(name=name) | ast.AsyncFunctionDef(name=name) | ast.ClassDef(
                name=name
            ):
                names.add(name)
            case ast.alias(name=name, asname=asname):
                names.add(asname or name.partition(".")[0])
            case ast.Global(names=declared) | ast.Nonlocal(names=declared):
                names.update(declared)
            case ast.ExceptHandler(name=str() as name):
                names.add(name)
            case ast.MatchAs(name=str() as name) | ast.MatchStar(name=str() as name):
                names.add(name)
    return names


class DataScope(ast.NodeTransformer):
    """Rewrite free name loads and attribute loads of template code."""

    def __init__(self, bound: Collection[str]) -> None:
        self._bound = bound

    def visit_Name(self, node: ast.Name) -> ast.AST:
        if isinstance(node.ctx, ast.Load) and node.id not in self._bound:
            call = ast.Call(
                func=ast.Name(id="_lookup", ctx=ast.Load()),
                args=[ast.Name(id="data", ctx=ast.Load()), ast.Constant(node.id)],
                keywords=[],
            )
            return ast.copy_location(call, node)
        return node

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        self.generic_visit(node)
        if isinstance(node.ctx, ast.Load):
            call = ast.Call(
                func=ast.Name(id="_getattr", ctx=ast.Load()),
                args=[node.value, ast.Constant(node.attr)],
                keywords=[],
            )
            return ast.copy_location(call, node)
        return node


def _rewrite(tree: ast.AST, reserved: Collection[str]) -> str:
    bound = set(reserved) | bound_names(tree)
    tree = ast.fix_missing_locations(DataScope(bound).visit(tree))
    return ast.unparse(tree)


def rewrite_expression(source: str, reserved: Collection[str]) -> str:
    """Rewrite one interpolation expression.

    Raises ``SyntaxError`` if *source* is not a Python expression.
    """
    return _rewrite(ast.parse(source.strip(), mode="eval"), reserved)


def rewrite_block(source: str, reserved: Collection[str]) -> str:
    """Rewrite a block of statements (a ``script[template]`` body).

    Raises ``SyntaxError`` if *source* is not valid Python.
    """
    return _rewrite(ast.parse(source, mode="exec"), reserved)
