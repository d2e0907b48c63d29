import json

from chartchat.assistant.interpreter import ActionableChart, PlainText, interpret, serialize
from chartchat.assistant.types import ChartAction


def test_plain_prose_becomes_plain_text():
    result = interpret("Sure, what would you like to see?")

    assert result == PlainText("Sure, what would you like to see?")
    assert result.chart_action is None


def test_json_without_chart_action_is_plain_text():
    raw = json.dumps({"chatResponse": "Which field should I group sales by?"})

    result = interpret(raw)

    assert isinstance(result, PlainText)
    assert result.chat_text == "Which field should I group sales by?"


def test_full_chart_action_is_actionable():
    raw = json.dumps(
        {
            "chatResponse": "Here you go",
            "chartAction": {
                "yAxis": "Sales.TotalSales",
                "xAxis": "District.District",
                "chartType": "columnChart",
            },
        }
    )

    result = interpret(raw)

    assert isinstance(result, ActionableChart)
    assert result.chart_action == ChartAction("Sales.TotalSales", "District.District", "columnChart")


def test_missing_chat_response_falls_back_to_raw_text():
    raw = json.dumps({"chartAction": {"yAxis": "a.b", "xAxis": "c.d", "chartType": "lineChart"}})

    result = interpret(raw)

    assert result == PlainText(raw)


def test_incomplete_chart_action_keeps_chat_text():
    raw = json.dumps({"chatResponse": "Done", "chartAction": {"yAxis": "Sales.TotalSales"}})

    assert interpret(raw) == PlainText("Done")


def test_code_fenced_json_is_accepted():
    raw = (
        "```json\n"
        '{"chatResponse": "Line chart coming up", "chartAction": '
        '{"yAxis": "Sales.TotalSales", "xAxis": "Time.Month", "chartType": "lineChart"}}\n'
        "```"
    )

    result = interpret(raw)

    assert result.chat_text == "Line chart coming up"
    assert result.chart_action.chart_type == "lineChart"


def test_json_embedded_in_prose_is_extracted():
    raw = 'Here is my answer: {"chatResponse": "Ok {braces} inside"} hope it helps'

    assert interpret(raw) == PlainText("Ok {braces} inside")


def test_unsupported_chart_type_passes_through():
    raw = json.dumps(
        {
            "chatResponse": "Scatter it is",
            "chartAction": {"yAxis": "a.b", "xAxis": "c.d", "chartType": "scatterChart"},
        }
    )

    result = interpret(raw)

    assert result.chart_action.chart_type == "scatterChart"
    assert not result.chart_action.is_supported_type


def test_empty_or_non_object_replies_never_raise():
    assert interpret("") == PlainText("")
    assert interpret(None) == PlainText("")
    assert interpret("[1, 2, 3]") == PlainText("[1, 2, 3]")


def test_serialize_round_trips_through_interpret():
    action = ChartAction("Sales.TotalSales", "Time.Month", "clusteredColumnChart", "District.District")

    result = interpret(serialize(action, "Clustered by district"))

    assert result == ActionableChart("Clustered by district", action)


def test_serialize_without_action():
    assert json.loads(serialize(None, "hello")) == {"chatResponse": "hello"}
