"""
Error taxonomy for annotation tables.

Header and cell errors describe bad user data and are usually collected into
a single `TableValidationError`. Structural errors describe a broken contract
between a table and its rows and abort the operation that detects them.
"""

import typing


class HeaderError(ValueError):
    """A column header pair does not match what its position requires."""

    def __init__(self, position: int, expected: str, observed: str, message: typing.Optional[str] = None):
        self.position = position
        self.expected = expected
        self.observed = observed
        if message is None:
            message = f"Column {position}: expected header {expected} but found {observed}"
        super().__init__(message)


class CellError(ValueError):
    """The text of a single cell fails its column's validation rule."""


class MalformedCellError(CellError):
    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Malformed HPO cell contents: {text!r}")


class StructuralError(RuntimeError):
    """Row and schema widths disagree, or tables cannot be combined."""


class IncompatibleCohortError(StructuralError):
    pass


class UnknownConceptError(LookupError):
    """A syntactically valid concept id that the hierarchy does not know."""

    def __init__(self, concept_id: str, message: typing.Optional[str] = None):
        self.concept_id = concept_id
        super().__init__(message or f"Concept {concept_id} is not in the ontology")


class ObsoleteConceptError(UnknownConceptError):
    def __init__(self, concept_id: str, replacement_id: str):
        self.replacement_id = replacement_id
        super().__init__(
            concept_id,
            f"Concept {concept_id} is obsolete, replace it with {replacement_id}",
        )


class DuplicateConceptError(ValueError):
    pass


class TableValidationError(ValueError):
    """
    Aggregate of every violation found in one validation pass.

    `messages` holds one human readable line per violation, in the order the
    violations were found.
    """

    def __init__(self, messages: typing.Sequence[str]):
        self.messages = list(messages)
        summary = f"{len(self.messages)} validation error(s)"
        if self.messages:
            summary += ":\n" + "\n".join(f"- {m}" for m in self.messages)
        super().__init__(summary)
