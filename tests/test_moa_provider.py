import httpx
import pytest

from produce_quote.models import Category
from produce_quote.providers.base import UpstreamError
from produce_quote.providers.moa_provider import MoaMarketDataProvider
from produce_quote.services.retrieval import partition_records

PAYLOAD = """[
  {"交易日期": "114.12.03", "種類代碼": "N04", "作物代號": "LA1", "作物名稱": "甘藍-初秋",
   "市場代號": "109", "市場名稱": "台北一", "上價": 45.50, "中價": 30.2, "下價": 12, "平均價": 29.80, "交易量": 40213},
  {"交易日期": "114.12.03", "種類代碼": "N05", "作物代號": "A1", "作物名稱": "香蕉",
   "市場代號": "109", "市場名稱": "台北一", "上價": 60, "中價": 40, "下價": 20, "平均價": 40.1, "交易量": 1800.5},
  {"交易日期": "114.12.03", "種類代碼": "N04", "作物代號": null, "作物名稱": "缺代號"}
]"""


def _provider(handler, **kwargs):
    return MoaMarketDataProvider(
        base_url="https://example.test/FarmTransData.aspx",
        market_name="台北一",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_single_request_with_same_start_and_end_date():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, content=PAYLOAD.encode("utf-8"), headers={"content-type": "application/json"})

    records = _provider(handler).fetch_records("114/12/03")

    assert len(seen) == 1
    params = seen[0].url.params
    assert params["StartDate"] == "114.12.03"
    assert params["EndDate"] == "114.12.03"
    assert params["MarketName"] == "台北一"
    assert [record.product_code for record in records] == ["LA1", "A1"]


def test_gregorian_date_style():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    _provider(handler, date_style="gregorian").fetch_records("114/12/03")
    assert seen[0].url.params["StartDate"] == "2025/12/03"


def test_upstream_decimal_text_is_preserved():
    def handler(request):
        return httpx.Response(200, content=PAYLOAD.encode("utf-8"))

    records = _provider(handler).fetch_records("114/12/03")
    rows = partition_records(records, [Category.VEGETABLE, Category.FRUIT])

    vegetable = rows[Category.VEGETABLE][0]
    assert vegetable.upper_price == "45.50"
    assert vegetable.average_price == "29.80"
    assert vegetable.lower_price == "12"
    assert vegetable.transaction_volume == "40213"
    assert rows[Category.FRUIT][0].transaction_volume == "1800.5"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="server error"),
        httpx.Response(200, json={"error": "quota"}),
        httpx.Response(200, text="<html>maintenance</html>"),
    ],
)
def test_bad_responses_raise_upstream_error(response):
    with pytest.raises(UpstreamError):
        _provider(lambda request: response).fetch_records("114/12/03")


def test_transport_errors_raise_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError):
        _provider(handler).fetch_records("114/12/03")
