"""Test configuration for pytest."""
import pytest

from messagelab.config.loader import GeneratorConfig
from messagelab.storage import JsonFileStore


ORDER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<order id="ORD-1001">
  <customer>
    <name>Alice</name>
    <ref>ORD-1001</ref>
  </customer>
  <items>
    <item sku="A1"><qty>2</qty><price>10.50</price></item>
    <item sku="B2"><qty>1</qty><price>4.00</price></item>
    <item sku="C3"><qty>5</qty><price>1.25</price></item>
  </items>
  <created>2024-01-15</created>
</order>
"""

ORDER_JSON = """{
  "orderId": "ORD-1001",
  "total": 42,
  "paid": true,
  "note": null,
  "items": [
    {"sku": "A1", "qty": 2},
    {"sku": "B2", "qty": 1}
  ],
  "reference": "ORD-1001"
}
"""

PEOPLE_CSV = "id;name\n1;Alice\n2;Bob\n"


@pytest.fixture
def order_xml():
    """Sample XML order with a repeated item element."""
    return ORDER_XML


@pytest.fixture
def order_json():
    """Sample JSON order with an array and every scalar type."""
    return ORDER_JSON


@pytest.fixture
def people_csv():
    """Sample semicolon-delimited CSV."""
    return PEOPLE_CSV


@pytest.fixture
def generator_config():
    """Seeded generator configuration for reproducible runs."""
    return GeneratorConfig(seed=1234)


@pytest.fixture
def store(tmp_path):
    """Key-value store in a temporary directory."""
    return JsonFileStore(tmp_path / "store.json")
