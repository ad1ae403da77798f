from estoque_vet.infra import logger


def test_logging_desligado_nao_grava(monkeypatch):
    monkeypatch.setattr(logger, "ENABLE_LOGGING", False)
    logger.log_system_event("qualquer")
    assert logger.get_log_summary("system") is None


def test_logging_ligado_grava_no_arquivo(tmp_path, monkeypatch):
    log_file = tmp_path / "system.log"
    monkeypatch.setattr(logger, "ENABLE_LOGGING", True)
    monkeypatch.setattr(logger, "LOG_FILES", {**logger.LOG_FILES, "system": log_file})
    monkeypatch.setattr(logger, "system_logger", logger.setup_logger("estoque_vet.test_system", str(log_file)))

    logger.log_system_event("movimentacoes_lote_done", {"sucessos": 2})

    resumo = logger.get_log_summary("system", lines=5)
    assert "SYSTEM_EVENT: movimentacoes_lote_done" in resumo
    assert "'sucessos': 2" in resumo


def test_log_summary_tipo_desconhecido(monkeypatch):
    monkeypatch.setattr(logger, "ENABLE_LOGGING", True)
    assert logger.get_log_summary("inexistente") == "Log inexistente não encontrado."
