"""Prints ASTs as indented s-expressions, e.g. `print 1 + 2;` becomes

```
(Program
  (PrintStmt
    (BinaryExpr
      (LiteralExpr 1)
      +
      (LiteralExpr 2))))
```
"""

from dataclasses import fields

from pylox.core.ast import Node
from pylox.core.token import Token

INDENT = "  "


def sprint(node, depth=0):
    """Returns node as an s-expression string."""
    pad = INDENT * depth

    if node is None:
        return pad + "nil"
    if isinstance(node, Token):
        return pad + node.lexeme
    if isinstance(node, bool):
        return pad + str(node).lower()
    if isinstance(node, list):
        if not node:
            return pad + "[]"
        return pad + "[\n" + "\n".join(sprint(item, depth + 1) for item in node) + "\n" + pad + "]"

    name = type(node).__name__
    children = [getattr(node, field.name) for field in fields(node) if field.name not in ("start", "end")]
    if not children:
        return f"{pad}({name})"
    if len(children) == 1 and isinstance(children[0], Token):
        return f"{pad}({name} {children[0].lexeme})"

    flattened = []
    for child in children:
        if isinstance(child, list) and child:
            flattened.extend(child)  # list items are printed as siblings
        else:
            flattened.append(child)

    body = "\n".join(sprint(child, depth + 1) for child in flattened)
    return f"{pad}({name}\n{body})"


def fprint(node, file=None):
    """Prints node to file (stdout by default)."""
    assert isinstance(node, Node), f"cannot print {type(node).__name__}"
    print(sprint(node), file=file)
