"""
Exceptions raised while importing a bank statement.
"""


class StatementImportError(Exception):
    """Base class for statement import failures."""


class UnsupportedFormatError(StatementImportError):
    """
    Raised when a file matches no statement grammar, or a grammar matched
    but not a single record could be read from it.

    Callers surface this as "no transactions recognized".
    """

    def __init__(self, message: str, filename: str = None, sample_text: str = None):
        self.filename = filename
        self.sample_text = sample_text

        details = []
        if filename:
            details.append(f"File: {filename}")
        if sample_text:
            details.append(f"Sample: {sample_text[:200]}...")

        full_message = f"{message}\n" + "\n".join(details) if details else message
        super().__init__(full_message)
