"""Tests for label and waste-report generation."""

from datetime import datetime
from pathlib import Path

import pytest

from foodworker.documents.labels import expiry_date, generate_label
from foodworker.documents.waste_report import WasteReportFields, create_waste_report

NOW = datetime(2025, 3, 14, 9, 26, 53)


class TestLabels:
    def test_defaults(self, tmp_path):
        result = generate_label({}, tmp_path, now=NOW)
        millis = int(NOW.timestamp() * 1000)

        assert result["sucesso"] is True
        assert result["etiquetaGerada"] is True
        assert result["loteEmbalagem"] == f"LOTE-{millis}"
        assert result["produtoId"] == f"PROD-LOTE-{millis}-{millis}"
        assert result["embalamento"] == "Embalamento padrão"
        assert result["responsavelEmbalamento"] == "Operador não identificado"
        assert result["dataEmbalamento"] == "14/03/2025 09:26:53"
        assert result["dataValidade"] == "21/03/2025"

    def test_file_written_with_sanitised_name(self, tmp_path):
        result = generate_label({"lote_embalagem": "L 42/a_b-c"}, tmp_path, now=NOW)

        path = Path(result["caminhoEtiqueta"])
        assert path.parent == tmp_path / "etiquetas_geradas"
        assert path.name == "ETQ_L42a_b-c_20250314_092653.txt"
        content = path.read_text(encoding="utf-8")
        assert "ETIQUETA DO PRODUTO" in content
        assert result["produtoId"] in content
        assert "L 42/a_b-c" in content

    def test_validity_from_packaging_date(self, tmp_path):
        result = generate_label({"data_embalamento": "30/12/2024 18:00:00"}, tmp_path, now=NOW)
        assert result["dataEmbalamento"] == "30/12/2024 18:00:00"
        assert result["dataValidade"] == "06/01/2025"

    def test_explicit_validity_kept(self, tmp_path):
        result = generate_label({"validade": "01/01/2030"}, tmp_path, now=NOW)
        assert result["dataValidade"] == "01/01/2030"

    def test_unparseable_packaging_date_falls_back_to_now(self):
        assert expiry_date("ontem", NOW) == "21/03/2025"

    def test_write_failure_propagates(self, tmp_path):
        blocker = tmp_path / "out"
        blocker.write_text("not a directory")
        with pytest.raises(OSError):
            generate_label({}, blocker, now=NOW)


class TestWasteReport:
    def test_fields_defaults(self):
        fields = WasteReportFields.from_variables({})
        assert fields.lote == "LOTE-NÃO-INFORMADO"
        assert fields.responsavel_cozedura == "Não informado"
        assert fields.funcionario == "Operador não identificado"
        assert fields.motivo == "qualidade_insuficiente"
        assert not fields.has_process_notes

    def test_operador_fallback(self):
        assert WasteReportFields.from_variables({"operador": "Rui"}).funcionario == "Rui"
        assert WasteReportFields.from_variables({"operador": "Rui", "nome_funcionario": "Ana"}).funcionario == "Ana"

    def test_report_content(self, tmp_path):
        result = create_waste_report(
            {
                "alimentos": "arroz.tomate",
                "quantidades": "3.12",
                "lote_produto": "L-7/B",
                "responsavel_cozedura": "Marta",
                "nome_funcionario": "Ana",
                "equipamentos": "Forno 2",
            },
            tmp_path,
            now=NOW,
        )

        path = Path(result["caminhoFicheiro"])
        assert path.name == "DESP_L_7_B_20250314_092653.txt"
        assert path.parent == tmp_path / "relatorios"
        content = path.read_text(encoding="utf-8")
        assert "DATA: 14/03/2025 09:26:53" in content
        assert "  • arroz           :    3 unidades" in content
        assert "  • tomate          :   12 unidades" in content
        assert "TOTAL ITENS: 2" in content
        assert "EQUIPAMENTOS UTILIZADOS:\n  Forno 2" in content
        assert "DESCRIÇÃO DA PREPARAÇÃO" not in content
        assert result == {
            "sucesso": True,
            "caminhoFicheiro": str(path),
            "lote": "L-7/B",
            "responsavelCozedura": "Marta",
            "funcionario": "Ana",
            "timestamp": NOW.isoformat(),
        }

    def test_no_items_and_no_process_section(self, tmp_path):
        result = create_waste_report({}, tmp_path, now=NOW)
        content = Path(result["caminhoFicheiro"]).read_text(encoding="utf-8")
        assert "Não foram especificados alimentos" in content
        assert "INFORMAÇÕES DO PROCESSO" not in content
        assert "ASSINATURAS" in content

    def test_write_failure_propagates(self, tmp_path):
        blocker = tmp_path / "out"
        blocker.write_text("not a directory")
        with pytest.raises(OSError):
            create_waste_report({}, blocker, now=NOW)
