"""
Escape Hatch for Failed Declarations.

A declaration that cannot be bound is kept verbatim between marker comments,
so a failure is visible in the generated file instead of producing a partial
binding:

.. code-block:: python

    # <CLASSFORGE_BINDING_FAILED>
    # Reason: 3:9: expected one of gc/weakref/subclass/dict/unsendable
    @pyclass(bogus)
    class Foo: ...
    # </CLASSFORGE_BINDING_FAILED>
    ...

The caller passes the *original* node so no half-rewritten code is emitted.
"""

from typing import Union

import libcst as cst


class EscapeHatch:
  START_MARKER = "# <CLASSFORGE_BINDING_FAILED>"
  END_MARKER = "# </CLASSFORGE_BINDING_FAILED>"

  @staticmethod
  def mark_failure(node: cst.BaseStatement, reason: str) -> Union[cst.BaseStatement, cst.FlattenSentinel]:
    """
    Attaches the start marker and reason to `node` and appends the end marker.

    Args:
        node: The statement to preserve.
        reason: Located diagnostic, one line per comment.

    Returns:
        A FlattenSentinel of the marked node and an Ellipsis statement carrying
        the end marker.
    """
    header_lines = [cst.EmptyLine(comment=cst.Comment(EscapeHatch.START_MARKER))]
    for line in reason.splitlines() or [""]:
      header_lines.append(cst.EmptyLine(comment=cst.Comment(f"# Reason: {line}".rstrip())))

    marked_node = node.with_changes(leading_lines=[*node.leading_lines, *header_lines])

    footer_node = cst.SimpleStatementLine(
      body=[cst.Expr(value=cst.Ellipsis())],
      leading_lines=[cst.EmptyLine(comment=cst.Comment(EscapeHatch.END_MARKER))],
    )
    return cst.FlattenSentinel([marked_node, footer_node])
