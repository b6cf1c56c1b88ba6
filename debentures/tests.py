"""
Testes do app debentures - datas, parsers, fontes primária/secundária, resolvedor e planilha.
"""
from datetime import date, datetime, timezone as dt_timezone
from io import StringIO
from unittest.mock import MagicMock, patch

import requests
import responses
from django.core.management import CommandError, call_command
from django.test import SimpleTestCase, override_settings
from googleapiclient.errors import HttpError
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .services import config, dates, sheets
from .services.browser import build_page_url, fetch_secondary_prices
from .services.collector import execute_update, update_assets
from .services.models import (
    STATUS_FORMAT_ERROR,
    STATUS_NOT_FOUND,
    STATUS_OK,
    Asset,
    QuoteOutcome,
    ScrapError,
    UpdateReport,
)
from .services.network import build_form_body, fetch_primary_prices
from .services.parsers import parse_nominal_price_cards, parse_price_history_table
from .tasks import update_nominal_prices


def _history_html(*rows):
    body = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"<html><body><table>{body}</table></body></html>"


def _history_row(code, ref_date="01/01/2024", value="1.234,5600"):
    return [code, ref_date, "Amortização", "0,00", "0,00", value]


def _request_body(call):
    body = call.request.body
    return body.decode() if isinstance(body, bytes) else body


# ---------------------------------------------------------------------------
# Datas
# ---------------------------------------------------------------------------


class DateNormalizerTest(SimpleTestCase):
    """Testes de to_internal / to_external / today_internal."""

    def test_converte_para_formato_interno(self):
        self.assertEqual(dates.to_internal("01/02/2024"), "2024-02-01")
        self.assertEqual(dates.to_internal(" 31/12/2023 "), "2023-12-31")

    def test_converte_para_formato_externo(self):
        self.assertEqual(dates.to_external("2024-02-01"), "01/02/2024")

    def test_retorna_none_para_data_invalida(self):
        for text in (None, "", "abc", "2024-01-01", "1/1/2024", "31/02/2024"):
            self.assertIsNone(dates.to_internal(text), text)
        for text in (None, "", "01/01/2024", "2024-13-01"):
            self.assertIsNone(dates.to_external(text), text)

    def test_ida_e_volta_preserva_data(self):
        for text in ("01/01/2024", "29/02/2024", "31/12/1999", "15/07/2031", "01/01/0999"):
            self.assertEqual(dates.to_external(dates.to_internal(text)), text)

    def test_anos_com_menos_de_quatro_digitos_sao_completados_com_zeros(self):
        self.assertEqual(dates.to_internal("01/01/0999"), "0999-01-01")
        self.assertEqual(dates.to_external("0050-06-15"), "15/06/0050")

    @patch("debentures.services.dates.timezone.now")
    def test_hoje_usa_fuso_de_nova_york(self, mock_now):
        # 03:00 UTC ainda é o dia anterior em Nova York
        mock_now.return_value = datetime(2024, 1, 2, 3, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(dates.today_internal(), "2024-01-01")
        self.assertEqual(dates.today_internal("America/Sao_Paulo"), "2024-01-02")


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


class ParsePriceHistoryTableTest(SimpleTestCase):
    """Testes de parse_price_history_table."""

    def test_extrai_data_e_valor_da_linha_do_ativo(self):
        html = _history_html(_history_row("OTHER1", "02/01/2024", "9,99"), _history_row("ABC12"))
        outcome = parse_price_history_table(html, "ABC12")
        self.assertEqual(outcome.status, STATUS_OK)
        self.assertEqual(outcome.value, "1.234,5600")
        self.assertEqual(outcome.ref_date, "2024-01-01")

    def test_ativo_ausente_retorna_not_found(self):
        outcome = parse_price_history_table(_history_html(_history_row("ABC12")), "XYZ99")
        self.assertEqual(outcome.status, STATUS_NOT_FOUND)
        self.assertIn("XYZ99", outcome.reason)

    def test_linha_sem_coluna_de_valor_retorna_not_found(self):
        html = _history_html(["ABC12", "01/01/2024", "x"])
        outcome = parse_price_history_table(html, "ABC12")
        self.assertEqual(outcome.status, STATUS_NOT_FOUND)

    def test_linha_sem_coluna_de_data_retorna_not_found(self):
        outcome = parse_price_history_table(_history_html(["ABC12"]), "ABC12")
        self.assertEqual(outcome.status, STATUS_NOT_FOUND)
        self.assertIn("coluna 1", outcome.reason)

    def test_celula_fora_de_linha_retorna_not_found(self):
        html = "<html><body><div><td>ABC12</td><td>01/01/2024</td></div></body></html>"
        outcome = parse_price_history_table(html, "ABC12")
        self.assertEqual(outcome.status, STATUS_NOT_FOUND)
        self.assertIn("ABC12", outcome.reason)

    def test_data_invalida_retorna_format_error(self):
        html = _history_html(_history_row("ABC12", ref_date="2024-01-01"))
        outcome = parse_price_history_table(html, "ABC12")
        self.assertEqual(outcome.status, STATUS_FORMAT_ERROR)

    def test_valor_fora_do_padrao_retorna_format_error(self):
        html = _history_html(_history_row("ABC12", value="abc"))
        outcome = parse_price_history_table(html, "ABC12")
        self.assertEqual(outcome.status, STATUS_FORMAT_ERROR)
        self.assertIn("abc", outcome.reason)


class ParseNominalPriceCardsTest(SimpleTestCase):
    """Testes de parse_nominal_price_cards."""

    def test_usa_primeiro_card_pu_par(self):
        cards = [
            ("Taxa indicativa", "12,5%"),
            ("PU PAR\n (ref. 05/03/2024)", "R$ 1.010,123456"),
            ("PU PAR (ref. 01/01/2020)", "R$ 1,00"),
        ]
        outcome = parse_nominal_price_cards(cards, "ABC12")
        self.assertEqual(outcome.status, STATUS_OK)
        self.assertEqual(outcome.value, "1.010,123456")
        self.assertEqual(outcome.ref_date, "2024-03-05")

    def test_para_de_ler_cards_apos_o_primeiro_pu_par(self):
        consumed = []

        def cards():
            for card in [("PU PAR ref. 05/03/2024", ""), ("PU PAR ref. 06/03/2024", "R$ 1,00")]:
                consumed.append(card)
                yield card

        outcome = parse_nominal_price_cards(cards(), "ABC12")
        self.assertEqual(outcome.status, STATUS_FORMAT_ERROR)
        self.assertEqual(len(consumed), 1)

    def test_valor_com_espaco_nao_separavel_apos_moeda(self):
        outcome = parse_nominal_price_cards([("PU PAR (ref. 05/03/2024)", "R$\u00a01.234,56")], "ABC12")
        self.assertEqual(outcome.status, STATUS_OK)
        self.assertEqual(outcome.value, "1.234,56")

    def test_sem_titulo_pu_par_retorna_not_found(self):
        outcome = parse_nominal_price_cards([("Taxa", "1,0"), (None, None)], "ABC12")
        self.assertEqual(outcome.status, STATUS_NOT_FOUND)

    def test_titulo_sem_data_retorna_format_error(self):
        outcome = parse_nominal_price_cards([("PU PAR", "R$ 1,00")], "ABC12")
        self.assertEqual(outcome.status, STATUS_FORMAT_ERROR)


# ---------------------------------------------------------------------------
# Fonte primária
# ---------------------------------------------------------------------------


class BuildFormBodyTest(SimpleTestCase):
    def test_codigo_com_mais_e_janela_de_sete_dias(self):
        body = build_form_body("ABC12", date(2024, 1, 10))
        self.assertEqual(body, "ativo=ABC12+++++&dt_ini=03%2F01%2F2024&dt_fim=17%2F01%2F2024")


class FetchPrimaryPricesTest(SimpleTestCase):
    """Testes de fetch_primary_prices com HTTP mockado por responses."""

    def _add_html(self, html, status=200, content_type="text/html; charset=utf-8"):
        responses.add(
            responses.POST,
            config.PRIMARY_SOURCE_URL,
            body=html,
            status=status,
            content_type=content_type,
        )

    @responses.activate
    def test_ativos_ja_atualizados_nao_fazem_requisicao(self):
        today = dates.today_internal()
        assets = [Asset("ABC12", today, "1,00"), Asset("DEF34", today, "2,00")]

        changed, errors = fetch_primary_prices(assets)

        self.assertFalse(changed)
        self.assertEqual(errors, [])
        self.assertEqual(len(responses.calls), 0)
        self.assertEqual(assets[0].value, "1,00")

    @responses.activate
    def test_atualiza_ativo_encontrado(self):
        self._add_html(_history_html(_history_row("ABC12")))
        asset = Asset("ABC12", "", "0,0000")

        changed, errors = fetch_primary_prices([asset])

        self.assertTrue(changed)
        self.assertEqual(errors, [])
        self.assertEqual(asset, Asset("ABC12", "2024-01-01", "1.234,5600"))
        self.assertEqual(
            _request_body(responses.calls[0]), build_form_body("ABC12", dates.today())
        )
        self.assertEqual(
            responses.calls[0].request.headers["Content-Type"],
            "application/x-www-form-urlencoded",
        )
        self.assertIn(responses.calls[0].request.headers["User-Agent"], config.USER_AGENTS)

    @responses.activate
    def test_ignora_ativo_atualizado_no_lote(self):
        self._add_html(_history_html(_history_row("ABC12")))
        fresh = Asset("DEF34", dates.today_internal(), "2,00")
        stale = Asset("ABC12", "2023-12-01", "1,00")

        changed, errors = fetch_primary_prices([fresh, stale])

        self.assertTrue(changed)
        self.assertEqual(errors, [])
        self.assertEqual(len(responses.calls), 1)
        self.assertEqual(fresh.value, "2,00")

    @responses.activate
    def test_ativo_sem_linha_gera_erro(self):
        self._add_html(_history_html(_history_row("ABC12")))
        asset = Asset("XYZ99", "", "0,0000")

        changed, errors = fetch_primary_prices([asset])

        self.assertFalse(changed)
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].asset_code, "XYZ99")
        self.assertEqual(asset, Asset("XYZ99", "", "0,0000"))

    @responses.activate
    def test_valor_invalido_nao_altera_ativo(self):
        self._add_html(_history_html(_history_row("ABC12", value="abc")))
        asset = Asset("ABC12", "2023-12-01", "1,00")

        changed, errors = fetch_primary_prices([asset])

        self.assertFalse(changed)
        self.assertEqual([e.asset_code for e in errors], ["ABC12"])
        self.assertIn("abc", errors[0].message)
        self.assertEqual(asset, Asset("ABC12", "2023-12-01", "1,00"))

    @responses.activate
    def test_resposta_nao_textual_gera_erro(self):
        self._add_html('{"ok": true}', content_type="application/json")

        changed, errors = fetch_primary_prices([Asset("ABC12")])

        self.assertFalse(changed)
        self.assertEqual(len(errors), 1)

    @responses.activate
    def test_falha_de_rede_nao_interrompe_o_lote(self):
        responses.add(
            responses.POST,
            config.PRIMARY_SOURCE_URL,
            body=requests.ConnectionError("connection reset"),
        )
        self._add_html(_history_html(_history_row("DEF34")))
        first = Asset("ABC12")
        second = Asset("DEF34")

        changed, errors = fetch_primary_prices([first, second])

        self.assertTrue(changed)
        self.assertEqual([e.asset_code for e in errors], ["ABC12"])
        self.assertIn("connection reset", errors[0].message)
        self.assertEqual(second.ref_date, "2024-01-01")

    @responses.activate
    def test_status_http_de_erro_gera_erro(self):
        self._add_html("Internal error", status=500)

        changed, errors = fetch_primary_prices([Asset("ABC12")])

        self.assertFalse(changed)
        self.assertEqual(len(errors), 1)

    @patch("debentures.services.network._fetch_asset_quote")
    @patch("debentures.services.network._build_session")
    def test_fecha_sessao_criada_internamente(self, mock_build, mock_fetch):
        mock_fetch.return_value = QuoteOutcome(status=STATUS_NOT_FOUND, reason="sem linha")

        fetch_primary_prices([Asset("ABC12")])

        mock_build.return_value.close.assert_called_once()

    @patch("debentures.services.network._fetch_asset_quote")
    @patch("debentures.services.network._build_session")
    def test_fecha_sessao_mesmo_com_excecao(self, mock_build, mock_fetch):
        mock_fetch.side_effect = RuntimeError("falha inesperada")

        with self.assertRaises(RuntimeError):
            fetch_primary_prices([Asset("ABC12")])

        mock_build.return_value.close.assert_called_once()

    @patch("debentures.services.network._fetch_asset_quote")
    def test_nao_fecha_sessao_recebida(self, mock_fetch):
        mock_fetch.return_value = QuoteOutcome(status=STATUS_NOT_FOUND, reason="sem linha")
        session = MagicMock()

        fetch_primary_prices([Asset("ABC12")], session=session)

        session.close.assert_not_called()
        mock_fetch.assert_called_once()


# ---------------------------------------------------------------------------
# Fonte secundária
# ---------------------------------------------------------------------------


class FakeNode:
    def __init__(self, text):
        self._text = text

    def text_content(self):
        return self._text


class FakeCard:
    def __init__(self, title, value):
        self.title = title
        self.value = value

    def query_selector(self, selector):
        if selector == config.CARD_TITLE_SELECTOR:
            return FakeNode(self.title) if self.title is not None else None
        if selector == config.CARD_VALUE_SELECTOR:
            return FakeNode(self.value) if self.value is not None else None
        return None


class FakePage:
    """Página falsa: cada URL expõe um conjunto de seletores e cards."""

    def __init__(self, pages, failing_urls=()):
        self.pages = pages
        self.failing_urls = set(failing_urls)
        self.visited = []
        self.screenshots = []
        self.current = {}

    def goto(self, url, timeout=None):
        self.visited.append(url)
        if url in self.failing_urls:
            raise PlaywrightError(f"net::ERR_CONNECTION_RESET at {url}")
        self.current = self.pages.get(url, {})

    def wait_for_selector(self, selector, timeout=None):
        if selector not in self.current.get("selectors", set()):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    def query_selector_all(self, selector):
        return [FakeCard(title, value) for title, value in self.current.get("cards", [])]

    def screenshot(self, path):
        self.screenshots.append(path)


def _card_page(title="PU PAR (ref. 05/03/2024)", value="R$ 1.010,123456"):
    return {"selectors": {config.CARD_VALUE_SELECTOR}, "cards": [("Emissor", "X"), (title, value)]}


NOT_FOUND_PAGE = {"selectors": {config.NOT_FOUND_SELECTOR}}


class FetchSecondaryPricesTest(SimpleTestCase):
    """Testes de fetch_secondary_prices com Playwright mockado."""

    def _mock_playwright(self, mock_sync, page):
        playwright = MagicMock()
        browser = playwright.chromium.launch.return_value
        browser.new_page.return_value = page
        manager = MagicMock()
        manager.__enter__.return_value = playwright
        manager.__exit__.return_value = False
        mock_sync.return_value = manager
        return playwright, browser

    @patch("debentures.services.browser.sync_playwright")
    def test_ativos_atualizados_nao_abrem_navegador(self, mock_sync):
        assets = [Asset("ABC12", dates.today_internal(), "1,00")]

        self.assertEqual(fetch_secondary_prices(assets), (False, []))
        mock_sync.assert_not_called()

    @patch("debentures.services.browser.sync_playwright")
    def test_atualiza_pela_pagina_de_debentures(self, mock_sync):
        url = build_page_url(config.DEBENTURES_BASE_URL, "ABC12")
        page = FakePage({url: _card_page()})
        _, browser = self._mock_playwright(mock_sync, page)
        asset = Asset("ABC12", "", "0,0000")

        changed, errors = fetch_secondary_prices([asset])

        self.assertTrue(changed)
        self.assertEqual(errors, [])
        self.assertEqual(asset, Asset("ABC12", "2024-03-05", "1.010,123456"))
        self.assertEqual(page.screenshots, [])
        browser.close.assert_called_once()
        self.assertIn(browser.new_page.call_args.kwargs["user_agent"], config.USER_AGENTS)

    @patch("debentures.services.browser.sync_playwright")
    def test_redireciona_para_certificados_quando_nao_encontrado(self, mock_sync):
        debenture_url = build_page_url(config.DEBENTURES_BASE_URL, "CRA123")
        receivable_url = build_page_url(config.RECEIVABLES_BASE_URL, "CRA123")
        page = FakePage({debenture_url: NOT_FOUND_PAGE, receivable_url: _card_page()})
        self._mock_playwright(mock_sync, page)
        asset = Asset("CRA123")

        changed, errors = fetch_secondary_prices([asset])

        self.assertTrue(changed)
        self.assertEqual(errors, [])
        self.assertEqual(page.visited, [debenture_url, receivable_url])
        self.assertEqual(asset.ref_date, "2024-03-05")

    @patch("debentures.services.browser.sync_playwright")
    def test_certificados_sem_cards_apos_redirecionar_gera_erro_e_captura(self, mock_sync):
        debenture_url = build_page_url(config.DEBENTURES_BASE_URL, "CRA123")
        receivable_url = build_page_url(config.RECEIVABLES_BASE_URL, "CRA123")
        page = FakePage({debenture_url: NOT_FOUND_PAGE, receivable_url: {}})
        _, browser = self._mock_playwright(mock_sync, page)
        asset = Asset("CRA123", "2023-12-01", "1,00")

        changed, errors = fetch_secondary_prices([asset])

        self.assertFalse(changed)
        self.assertEqual([e.asset_code for e in errors], ["CRA123"])
        self.assertEqual(page.visited, [debenture_url, receivable_url])
        self.assertEqual(len(page.screenshots), 1)
        self.assertTrue(page.screenshots[0].endswith("CRA123.png"))
        self.assertEqual(asset, Asset("CRA123", "2023-12-01", "1,00"))
        browser.close.assert_called_once()

    @patch("debentures.services.browser.sync_playwright")
    def test_pagina_sem_cards_gera_erro_e_captura(self, mock_sync):
        page = FakePage({})
        _, browser = self._mock_playwright(mock_sync, page)
        asset = Asset("XYZ99", "2023-12-01", "1,00")

        changed, errors = fetch_secondary_prices([asset])

        self.assertFalse(changed)
        self.assertEqual([e.asset_code for e in errors], ["XYZ99"])
        self.assertEqual(len(page.visited), 1)
        self.assertEqual(len(page.screenshots), 1)
        self.assertTrue(page.screenshots[0].endswith("XYZ99.png"))
        self.assertEqual(asset.value, "1,00")
        browser.close.assert_called_once()

    @patch("debentures.services.browser.sync_playwright")
    def test_sem_titulo_pu_par_captura_com_nome_padrao(self, mock_sync):
        url = build_page_url(config.DEBENTURES_BASE_URL, "ABC12")
        page = FakePage({url: {"selectors": {config.CARD_VALUE_SELECTOR}, "cards": [("Taxa", "1,0")]}})
        self._mock_playwright(mock_sync, page)

        changed, errors = fetch_secondary_prices([Asset("ABC12")])

        self.assertFalse(changed)
        self.assertEqual(len(errors), 1)
        self.assertTrue(page.screenshots[0].endswith(f"{config.SNAPSHOT_FALLBACK_NAME}.png"))

    @patch("debentures.services.browser.sync_playwright")
    def test_falha_de_navegacao_nao_interrompe_o_lote(self, mock_sync):
        failing_url = build_page_url(config.DEBENTURES_BASE_URL, "ABC12")
        ok_url = build_page_url(config.DEBENTURES_BASE_URL, "DEF34")
        page = FakePage({ok_url: _card_page()}, failing_urls=[failing_url])
        _, browser = self._mock_playwright(mock_sync, page)
        first, second = Asset("ABC12"), Asset("DEF34")

        changed, errors = fetch_secondary_prices([first, second])

        self.assertTrue(changed)
        self.assertEqual([e.asset_code for e in errors], ["ABC12"])
        self.assertIn("ERR_CONNECTION_RESET", errors[0].message)
        self.assertEqual(second.ref_date, "2024-03-05")
        browser.close.assert_called_once()

    @patch("debentures.services.browser.sync_playwright")
    def test_falha_ao_iniciar_navegador_e_propagada(self, mock_sync):
        playwright, _ = self._mock_playwright(mock_sync, FakePage({}))
        playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

        with self.assertRaises(PlaywrightError):
            fetch_secondary_prices([Asset("ABC12")])


# ---------------------------------------------------------------------------
# Resolvedor
# ---------------------------------------------------------------------------


class UpdateAssetsTest(SimpleTestCase):
    """Testes de update_assets com as duas fontes mockadas."""

    @patch("debentures.services.collector.fetch_secondary_prices")
    @patch("debentures.services.collector.fetch_primary_prices")
    def test_sem_erros_nao_chama_fonte_secundaria(self, mock_primary, mock_secondary):
        mock_primary.return_value = (True, [])
        assets = [Asset("ABC12"), Asset("DEF34")]

        result, changed, errors = update_assets(assets)

        self.assertIs(result, assets)
        self.assertTrue(changed)
        self.assertEqual(errors, [])
        mock_secondary.assert_not_called()

    @patch("debentures.services.collector.fetch_secondary_prices")
    @patch("debentures.services.collector.fetch_primary_prices")
    def test_reprocessa_somente_ativos_com_erro(self, mock_primary, mock_secondary):
        assets = [Asset("AAA11"), Asset("BBB22"), Asset("CCC33")]
        mock_primary.return_value = (True, [ScrapError("sem linha", "BBB22")])
        mock_secondary.return_value = (False, [ScrapError("sem card", "BBB22")])

        result, changed, errors = update_assets(assets)

        mock_secondary.assert_called_once()
        retried = mock_secondary.call_args.args[0]
        self.assertEqual([a.code for a in retried], ["BBB22"])
        self.assertEqual([a.code for a in result], ["AAA11", "CCC33", "BBB22"])
        self.assertTrue(changed)
        self.assertEqual(errors, [ScrapError("sem card", "BBB22")])

    @patch("debentures.services.collector.fetch_secondary_prices")
    @patch("debentures.services.collector.fetch_primary_prices")
    def test_mudanca_da_fonte_secundaria_conta_como_alteracao(self, mock_primary, mock_secondary):
        mock_primary.return_value = (False, [ScrapError("x", "ABC12")])
        mock_secondary.return_value = (True, [])

        result, changed, errors = update_assets([Asset("ABC12")])

        self.assertEqual(len(result), 1)
        self.assertTrue(changed)
        self.assertEqual(errors, [])

    @patch("debentures.services.collector.fetch_secondary_prices")
    @patch("debentures.services.collector.fetch_primary_prices")
    def test_avisa_sobre_codigos_repetidos(self, mock_primary, mock_secondary):
        mock_primary.return_value = (False, [])

        with self.assertLogs("debentures.services.collector", level="WARNING") as logs:
            result, _, _ = update_assets([Asset("ABC12"), Asset("ABC12")])

        self.assertEqual(len(result), 2)
        self.assertIn("ABC12", logs.output[0])

    @responses.activate
    @patch("debentures.services.collector.fetch_secondary_prices")
    def test_cenario_atualizado_pela_fonte_primaria(self, mock_secondary):
        responses.add(
            responses.POST,
            config.PRIMARY_SOURCE_URL,
            body=_history_html(_history_row("ABC12")),
            content_type="text/html",
        )

        result, changed, errors = update_assets([Asset("ABC12", "", "0,0000")])

        self.assertEqual(result, [Asset("ABC12", "2024-01-01", "1.234,5600")])
        self.assertTrue(changed)
        self.assertEqual(errors, [])
        mock_secondary.assert_not_called()

    @responses.activate
    @patch("debentures.services.collector.fetch_secondary_prices")
    def test_cenario_ativo_sem_linha_vai_para_fonte_secundaria(self, mock_secondary):
        responses.add(
            responses.POST,
            config.PRIMARY_SOURCE_URL,
            body=_history_html(_history_row("ABC12")),
            content_type="text/html",
        )
        mock_secondary.return_value = (False, [ScrapError("sem card", "XYZ99")])
        assets = [Asset("ABC12", "", "0,0000"), Asset("XYZ99", "", "0,0000")]

        result, changed, errors = update_assets(assets)

        self.assertEqual(mock_secondary.call_args.args[0], [Asset("XYZ99", "", "0,0000")])
        self.assertEqual(sorted(a.code for a in result), ["ABC12", "XYZ99"])
        self.assertTrue(changed)
        self.assertEqual([e.asset_code for e in errors], ["XYZ99"])

    @patch("debentures.services.browser.sync_playwright")
    @responses.activate
    def test_cenario_todos_atualizados_nao_faz_requisicoes(self, mock_sync):
        today = dates.today_internal()
        assets = [Asset("ABC12", today, "1,00")]

        self.assertEqual(update_assets(assets), (assets, False, []))
        self.assertEqual(len(responses.calls), 0)
        mock_sync.assert_not_called()


# ---------------------------------------------------------------------------
# Planilha
# ---------------------------------------------------------------------------


@override_settings(DEBENTURES_SPREADSHEET_ID="test-spreadsheet")
class SheetsTest(SimpleTestCase):
    """Testes do adaptador do Google Sheets."""

    def _rows(self, *data):
        return [["cabeçalho"]] * sheets.START_ROW + list(data)

    def test_converte_linhas_em_ativos(self):
        rows = self._rows(
            ["abc12", "1.000,00", "01/01/2024"],
            ["DEF34"],
            ["GHI56", "", "data ruim"],
            [""],
            ["JKL78", "5,00", "02/01/2024"],
        )

        assets = sheets.parse_rows(rows)

        self.assertEqual(
            assets,
            [
                Asset("ABC12", "2024-01-01", "1.000,00"),
                Asset("DEF34", "", "0,0000"),
                Asset("GHI56", "", "0,0000"),
            ],
        )

    def test_avisa_linha_onde_a_leitura_parou(self):
        rows = self._rows(["ABC12", "1,00", "01/01/2024"], [""], ["DEF34", "2,00", "02/01/2024"])

        with self.assertLogs("debentures.services.sheets", "WARNING") as logs:
            assets = sheets.parse_rows(rows)

        self.assertEqual([asset.code for asset in assets], ["ABC12"])
        self.assertEqual(len(logs.output), 1)
        self.assertIn(f"linha {sheets.START_ROW + 2}", logs.output[0])
        self.assertIn(f"índice {sheets.START_ROW + 1}", logs.output[0])

    def test_monta_batch_update(self):
        body = sheets.build_update_request(
            [Asset("ABC12", "2024-01-01", "1.000,00"), Asset("DEF34", "", "2,00")]
        )

        update = body["requests"][0]["updateCells"]
        self.assertEqual(update["range"]["startRowIndex"], sheets.START_ROW)
        self.assertEqual(update["range"]["endRowIndex"], sheets.START_ROW + 2)
        self.assertEqual(update["fields"], "userEnteredValue")
        first = [cell["userEnteredValue"]["stringValue"] for cell in update["rows"][0]["values"]]
        self.assertEqual(first, ["ABC12", "1.000,00", "01/01/2024"])
        second = [cell["userEnteredValue"]["stringValue"] for cell in update["rows"][1]["values"]]
        self.assertEqual(second, ["DEF34", "2,00", ""])

    def test_planilha_vazia_gera_erro(self):
        service = MagicMock()
        service.spreadsheets().values().get().execute.return_value = {}

        with self.assertRaises(sheets.SpreadsheetError):
            sheets.read_assets(service)

    def test_le_ativos_da_planilha(self):
        service = MagicMock()
        service.spreadsheets().values().get().execute.return_value = {
            "values": self._rows(["ABC12", "1,00", "01/01/2024"])
        }

        self.assertEqual(sheets.read_assets(service), [Asset("ABC12", "2024-01-01", "1,00")])

    def test_erro_da_api_ao_gravar_vira_spreadsheet_error(self):
        service = MagicMock()
        service.spreadsheets().batchUpdate().execute.side_effect = HttpError(
            MagicMock(status=500, reason="Internal"), b"boom"
        )

        with self.assertRaises(sheets.SpreadsheetError):
            sheets.write_assets(service, [Asset("ABC12")])


# ---------------------------------------------------------------------------
# Execução completa, comando e task
# ---------------------------------------------------------------------------


class ExecuteUpdateTest(SimpleTestCase):
    """Testes de execute_update com planilha e resolvedor mockados."""

    @patch("debentures.services.collector.update_assets")
    @patch("debentures.services.collector.sheets")
    def test_grava_planilha_quando_algo_mudou(self, mock_sheets, mock_update):
        assets = [Asset("ABC12")]
        mock_sheets.read_assets.return_value = assets
        mock_update.return_value = (assets, True, [])

        report = execute_update("cred.json")

        mock_sheets.write_assets.assert_called_once_with(
            mock_sheets.build_service.return_value, assets
        )
        self.assertTrue(report.changed)

    @patch("debentures.services.collector.update_assets")
    @patch("debentures.services.collector.sheets")
    def test_nao_grava_quando_nada_mudou(self, mock_sheets, mock_update):
        mock_sheets.read_assets.return_value = [Asset("ABC12")]
        mock_update.return_value = ([Asset("ABC12")], False, [ScrapError("x", "ABC12")])

        report = execute_update("cred.json")

        mock_sheets.write_assets.assert_not_called()
        self.assertEqual(len(report.errors), 1)

    @patch("debentures.services.collector.update_assets")
    @patch("debentures.services.collector.sheets")
    def test_planilha_sem_ativos_nao_busca_precos(self, mock_sheets, mock_update):
        mock_sheets.read_assets.return_value = []

        report = execute_update("cred.json")

        mock_update.assert_not_called()
        self.assertEqual(report, UpdateReport())


class UpdateNominalPricesCommandTest(SimpleTestCase):
    """Testes do comando update_nominal_prices."""

    def test_credencial_inexistente_gera_command_error(self):
        with self.assertRaises(CommandError):
            call_command("update_nominal_prices", google="/nao/existe/cred.json")

    @patch("debentures.management.commands.update_nominal_prices.execute_update")
    def test_erros_finais_falham_a_execucao(self, mock_execute):
        mock_execute.return_value = UpdateReport(
            assets=[Asset("XYZ99")], changed=False, errors=[ScrapError("x", "XYZ99")]
        )

        with self.assertRaisesMessage(CommandError, "XYZ99"):
            call_command("update_nominal_prices", google=__file__)

    @patch("debentures.management.commands.update_nominal_prices.execute_update")
    def test_erro_da_planilha_vira_command_error(self, mock_execute):
        mock_execute.side_effect = sheets.SpreadsheetError("sem dados")

        with self.assertRaisesMessage(CommandError, "sem dados"):
            call_command("update_nominal_prices", google=__file__)

    @patch("debentures.management.commands.update_nominal_prices.execute_update")
    def test_execucao_bem_sucedida(self, mock_execute):
        mock_execute.return_value = UpdateReport(assets=[Asset("ABC12")], changed=True)
        out = StringIO()

        call_command("update_nominal_prices", google=__file__, stdout=out)

        self.assertIn("planilha gravada", out.getvalue())


class UpdateNominalPricesTaskTest(SimpleTestCase):
    """Testes da task Celery."""

    @patch("debentures.tasks.execute_update")
    def test_task_retorna_quantidade_de_ativos(self, mock_execute):
        mock_execute.return_value = UpdateReport(assets=[Asset("ABC12")], changed=True)

        self.assertEqual(update_nominal_prices(), 1)

    @patch("debentures.tasks.execute_update")
    def test_task_falha_quando_sobram_erros(self, mock_execute):
        mock_execute.return_value = UpdateReport(errors=[ScrapError("x", "XYZ99")])

        with self.assertRaises(RuntimeError):
            update_nominal_prices()
