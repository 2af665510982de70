"""Exceptions shared by the analysis core and the rule layer."""


class ConfigurationError(ValueError):
    """A rule option has a value the rule does not recognise."""


class ContractViolation(Exception):  # noqa: N818
    """The syntax tree or line view broke an invariant the checks rely on.

    This is an integration defect, not a style finding: analysis of the file
    is aborted and the error is reported separately from diagnostics.
    """
