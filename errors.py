"""
Типы ошибок компрессора MZIP.
"""


class CompressionError(Exception):
    pass


class EmptyInputError(CompressionError):
    def __init__(self, name: str = ''):
        self.name = name
        target = f" '{name}'" if name else ''
        super().__init__(f"Nothing to compress: input{target} is empty")


class MalformedArtifactError(CompressionError, ValueError):
    pass


class InvalidNameError(CompressionError, ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Artifact name must be a single line: {name!r}")
