class DeviceExportError(Exception):
    """Base de todos os erros da exportação."""

    exit_code = 1


class AuthenticationError(DeviceExportError):
    """Credenciais ausentes/inválidas ou login recusado."""

    exit_code = 2


class RetrievalError(DeviceExportError):
    """Falha na chamada remota ao listar os devices."""

    exit_code = 3


class ExportError(DeviceExportError):
    """Falha de I/O ao gravar um arquivo de saída."""

    exit_code = 4


class ConfigurationError(DeviceExportError):
    """Diretório de saída não pôde ser criado."""

    exit_code = 5
