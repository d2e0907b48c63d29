import pytest

from chartchat.powerbi.schema import Column, Table, snapshot_from_tables


@pytest.fixture
def sales_schema():
    return snapshot_from_tables(
        [
            Table(
                "Sales",
                "fact",
                (
                    Column("TotalSales", "measure", "Sum of sales", "currency"),
                    Column("TotalUnits", "measure", "Sum of units", "int64"),
                ),
            ),
            Table("Time", "dimension", (Column("Month", "date", "Calendar month", "datetime"),)),
            Table(
                "District",
                "dimension",
                (Column("District", "text", "Sales district", "string"),),
            ),
        ],
        dataset_name="Retail Analysis",
    )
