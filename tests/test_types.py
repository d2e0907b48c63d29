from chartchat.assistant.types import (
    ChartAction,
    ChartState,
    ChatHistory,
    ChatTurn,
    parse_field_ref,
)


def test_parse_field_ref_splits_on_first_dot():
    assert parse_field_ref("Sales.TotalSales") == ("Sales", "TotalSales")
    assert parse_field_ref("Sales.Total.Net") == ("Sales", "Total.Net")
    assert parse_field_ref("TotalSales") == (None, "TotalSales")


def test_merged_overwrites_only_present_fields():
    state = ChartState("Sales.TotalSales", "Time.Month", "clusteredColumnChart", "District.District")

    merged = state.merged(ChartAction("Sales.TotalUnits", "Time.Month", "lineChart"))

    assert merged == ChartState("Sales.TotalUnits", "Time.Month", "lineChart", "District.District")


def test_chart_state_from_payload_ignores_blank_values():
    state = ChartState.from_payload({"yAxis": " ", "xAxis": "Time.Month", "chartType": None})

    assert state == ChartState(x_axis="Time.Month")
    assert ChartState.from_payload(None).is_empty


def test_unresolved_fields_reports_unknown_references(sales_schema):
    state = ChartState("Sales.Profit", "Time.Month", "columnChart")

    assert state.unresolved_fields(sales_schema) == ["Sales.Profit"]


def test_history_keeps_only_the_last_four_turns():
    history = ChatHistory()
    for index in range(6):
        history.add("user" if index % 2 == 0 else "assistant", f"message {index}")

    assert len(history) == 4
    assert [turn.content for turn in history] == [f"message {i}" for i in range(2, 6)]


def test_history_from_payload_drops_invalid_entries():
    history = ChatHistory.from_payload(
        [
            {"role": "user", "content": "hi"},
            {"role": "system", "content": "ignored"},
            {"role": "assistant", "content": 3},
            "not a dict",
        ]
    )

    assert history.turns() == [ChatTurn("user", "hi")]


def test_chart_action_payload_omits_empty_series():
    action = ChartAction("Sales.TotalSales", "Time.Month", "lineChart")

    assert action.to_payload() == {
        "yAxis": "Sales.TotalSales",
        "xAxis": "Time.Month",
        "chartType": "lineChart",
    }
    assert action.is_supported_type
    assert not ChartAction("a.b", "c.d", "scatterChart").is_supported_type
