"""pygls LSP server for gapcheck."""

from lsprotocol import types
from pygls.lsp import server as pygls_server

from gapcheck import analyzer as gapcheck_analyzer
from gapcheck import config as gapcheck_config
from gapcheck import errors, rules
from gapcheck.rules import base

server = pygls_server.LanguageServer("gapcheck", "v0.1.0")
_active_rules, _config_errors = gapcheck_config.resolve_rules(
    rules.ALL_RULES, gapcheck_config.load_config()
)
analyzer = gapcheck_analyzer.Analyzer(rules=_active_rules)


def _to_lsp(diag: base.Diagnostic) -> types.Diagnostic:
    """Convert a gapcheck Diagnostic to an LSP Diagnostic."""
    severity_map = {
        base.Severity.ERROR: types.DiagnosticSeverity.Error,
        base.Severity.WARNING: types.DiagnosticSeverity.Warning,
        base.Severity.INFORMATION: types.DiagnosticSeverity.Information,
        base.Severity.HINT: types.DiagnosticSeverity.Hint,
    }
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=diag.line - 1, character=diag.col),
            end=types.Position(line=diag.end_line - 1, character=diag.end_col),
        ),
        message=f"{diag.rule_id} {diag.message}",
        severity=severity_map[diag.severity],
        code=diag.rule_id,
        source="gapcheck",
    )


def _log_error(ls: pygls_server.LanguageServer, message: str) -> None:
    """Send an error to the client's log, outside the diagnostics list."""
    ls.window_log_message(
        types.LogMessageParams(type=types.MessageType.Error, message=message)
    )


def _publish(ls: pygls_server.LanguageServer, uri: str) -> None:
    """Analyze a document and publish diagnostics to the client."""
    source = ls.workspace.get_text_document(uri).source
    try:
        diagnostics = analyzer.analyze(source)
    except errors.ContractViolation as exc:
        _log_error(ls, f"gapcheck internal error in {uri}: {exc}")
        diagnostics = []
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(
            uri=uri,
            diagnostics=[_to_lsp(diag) for diag in diagnostics],
        )
    )


@server.feature(types.INITIALIZED)
def initialized(
    ls: pygls_server.LanguageServer,
    params: types.InitializedParams,
) -> None:
    """Report configuration errors once the client is ready to receive them."""
    for exc in _config_errors:
        _log_error(ls, f"gapcheck config error: {exc}")


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(
    ls: pygls_server.LanguageServer,
    params: types.DidOpenTextDocumentParams,
) -> None:
    """Analyze a newly opened document."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(
    ls: pygls_server.LanguageServer,
    params: types.DidChangeTextDocumentParams,
) -> None:
    """Re-analyze a document after every change."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(
    ls: pygls_server.LanguageServer,
    params: types.DidCloseTextDocumentParams,
) -> None:
    """Clear diagnostics when a document is closed."""
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


def start() -> None:
    """Start the LSP server over stdio."""
    server.start_io()
