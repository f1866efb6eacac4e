"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BEDROCK_MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0")
os.environ.setdefault("UPLOAD_BUCKET_NAME", "finance-insight-uploads-test")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

import pytest  # noqa: E402

from packages.common.database import DatabaseSessionManager  # noqa: E402
from packages.common.product_cache import CategoryCache  # noqa: E402
from packages.domain.classification import (  # noqa: E402
    ClassificationService,
    ProductClassifier,
    VendorClassifier,
)
from tests.fakes import FakeInferenceClient, expense_field  # noqa: E402


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against real AWS resources"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring real AWS resources"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
async def sessionmanager(tmp_path):
    """SQLite database file per test with all tables created"""
    manager = DatabaseSessionManager()
    await manager.init(f"sqlite+aiosqlite:///{tmp_path / 'finance.db'}")
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def category_cache(sessionmanager) -> CategoryCache:
    return CategoryCache(sessionmanager)


@pytest.fixture
def fake_inference() -> FakeInferenceClient:
    return FakeInferenceClient()


@pytest.fixture
def classification_service(fake_inference, category_cache) -> ClassificationService:
    return ClassificationService(
        vendor_classifier=VendorClassifier(fake_inference),
        product_classifier=ProductClassifier(fake_inference, category_cache),
    )


@pytest.fixture
def analyze_expense_response():
    """AnalyzeExpense response for a small Chilean supermarket receipt"""
    return {
        "DocumentMetadata": {"Pages": 1},
        "ExpenseDocuments": [
            {
                "ExpenseIndex": 1,
                "SummaryFields": [
                    expense_field("VENDOR_NAME", "Super Abarrotes SA"),
                    expense_field("COUNTRY", "CL"),
                    expense_field("TOTAL", "3.490"),
                    expense_field("INVOICE_RECEIPT_DATE", "2024-05-02"),
                    expense_field(None, "no type here"),
                ],
                "LineItemGroups": [
                    {
                        "LineItemGroupIndex": 1,
                        "LineItems": [
                            {"LineItemExpenseFields": [
                                expense_field("ITEM", "Pan"),
                                expense_field("PRICE", "1.990"),
                                expense_field("QUANTITY", "2"),
                            ]},
                            {"LineItemExpenseFields": [
                                expense_field("ITEM", "Tornillo"),
                                expense_field("PRICE", "1.500"),
                            ]},
                        ],
                    },
                ],
            }
        ],
    }
