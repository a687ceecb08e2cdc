from __future__ import annotations


class AgentronicError(Exception):
    """Base class for errors raised by the agentronic toolkit."""


class InvalidKeyError(AgentronicError, ValueError):
    def __init__(self, key: object) -> None:
        super().__init__(f"Unrecognized pitch-class name: {key!r}")
        self.key = key


class EmptyInputError(AgentronicError, ValueError):
    pass


class UnsupportedAnalysisTypeError(AgentronicError, ValueError):
    def __init__(self, analysis_type: object) -> None:
        super().__init__(f"Unknown analysis type: {analysis_type}")
        self.analysis_type = analysis_type


class UnsupportedGenerationTypeError(AgentronicError, ValueError):
    def __init__(self, generation_type: object) -> None:
        super().__init__(f"Unknown generation type: {generation_type}")
        self.generation_type = generation_type


class UnsupportedFormatError(AgentronicError, ValueError):
    def __init__(self, fmt: object) -> None:
        super().__init__(f"Unsupported format: {fmt}")
        self.format = fmt


class RecordNotFoundError(AgentronicError, KeyError):
    def __init__(self, table: str, record_id: str) -> None:
        super().__init__(f"No record {record_id!r} in table {table!r}")
        self.table = table
        self.record_id = record_id

    def __str__(self) -> str:
        return str(self.args[0])
