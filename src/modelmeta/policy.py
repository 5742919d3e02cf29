"""Named leniency policies.

Several inputs are tolerated rather than rejected. Each tolerance is a
module-level constant so callers and tests can assert on it directly:

- ``MALFORMED_ANNOTATION_LITERAL``: ``min=abc`` on a field is ignored
- ``MALFORMED_RELATION_ANNOTATION``: a relation annotation missing
  ``resource`` or ``type`` declares no relation
- ``UNRESOLVABLE_CONDITION``: a conditional rule whose dependent
  field is missing, or whose operands cannot be compared, is skipped
- ``MISSING_PERMISSIONS``: no permission entry means allowed
- ``UNEVALUATED_HOOKS``: async / custom rules pass when no
  evaluator is configured
- ``SHAPE_INFERRED_TO_ONE``: a record-typed field without an
  annotation infers one-to-one, never many-to-one
"""

from __future__ import annotations

from enum import Enum


class Tolerance(str, Enum):
    IGNORE = "ignore"
    SKIP = "skip"
    PERMIT = "permit"


class InferredToOne(str, Enum):
    ONE_TO_ONE = "one-to-one"


MALFORMED_ANNOTATION_LITERAL = Tolerance.IGNORE
MALFORMED_RELATION_ANNOTATION = Tolerance.IGNORE
UNRESOLVABLE_CONDITION = Tolerance.SKIP
MISSING_PERMISSIONS = Tolerance.PERMIT
UNEVALUATED_HOOKS = Tolerance.SKIP
SHAPE_INFERRED_TO_ONE = InferredToOne.ONE_TO_ONE
