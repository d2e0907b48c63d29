from chartchat.assistant.prompt_builder import PromptBuilder
from chartchat.assistant.types import ChartState, ChatTurn


def test_prompt_lists_schema_fields_with_types(sales_schema):
    prompt = PromptBuilder().build_prompt(sales_schema, None, [])

    assert "Sales.TotalSales [measure]" in prompt
    assert "Time.Month [date]" in prompt
    assert "District.District [text]" in prompt
    assert "Schema temporarily unavailable" not in prompt


def test_prompt_without_schema_says_so():
    prompt = PromptBuilder().build_prompt(None, None, [])

    assert "Schema temporarily unavailable" in prompt
    assert "Table.FieldName" in prompt


def test_prompt_contains_output_contract_and_clarification_rule(sales_schema):
    prompt = PromptBuilder().build_prompt(sales_schema, None, [])

    assert '"chatResponse"' in prompt
    assert '"chartAction"' in prompt
    assert "ask which dimension to group by" in prompt
    assert "omit chartAction" in prompt


def test_prompt_includes_bar_chart_axis_swap(sales_schema):
    prompt = PromptBuilder().build_prompt(sales_schema, None, [])

    assert "- barChart: xAxis = measure, yAxis = dimension" in prompt
    assert "- columnChart: xAxis = dimension, yAxis = measure" in prompt


def test_current_chart_block_only_when_a_chart_exists(sales_schema):
    builder = PromptBuilder()

    assert "CURRENT CHART CONTEXT" not in builder.build_prompt(sales_schema, None, [])
    assert "CURRENT CHART CONTEXT" not in builder.build_prompt(sales_schema, ChartState(), [])

    chart = ChartState("Sales.TotalSales", "District.District", "columnChart")
    prompt = builder.build_prompt(sales_schema, chart, [])

    assert "CURRENT CHART CONTEXT" in prompt
    assert "- Y-axis: Sales.TotalSales" in prompt
    assert "- Chart Type: columnChart" in prompt


def test_current_chart_block_shows_rederived_axes(sales_schema):
    chart = ChartState("Sales.TotalSales", "District.District", "columnChart")

    prompt = PromptBuilder().build_prompt(sales_schema, chart, [])

    assert 'Changing to barChart swaps the axes: yAxis="District.District", xAxis="Sales.TotalSales".' in prompt
    assert 'keeps the axes: yAxis="Sales.TotalSales", xAxis="District.District".' in prompt


def test_current_chart_fields_missing_from_schema_are_not_offered(sales_schema):
    chart = ChartState("Sales.Profit", "Region.Name", "columnChart")

    prompt = PromptBuilder().build_prompt(sales_schema, chart, [])

    assert "Sales.Profit" not in prompt
    assert "Region.Name" not in prompt
    assert "- Y-axis: none" in prompt
    assert "no longer in the dataset" in prompt


def test_current_chart_kept_as_is_without_schema():
    chart = ChartState("Sales.Profit", "Region.Name", "columnChart")

    prompt = PromptBuilder().build_prompt(None, chart, [])

    assert "- Y-axis: Sales.Profit" in prompt
    assert "no longer in the dataset" not in prompt


def test_history_is_rendered_oldest_first_and_trimmed(sales_schema):
    history = [ChatTurn("user" if i % 2 == 0 else "assistant", f"turn {i}") for i in range(6)]

    prompt = PromptBuilder(history_limit=4).build_prompt(sales_schema, None, history)

    assert "turn 0" not in prompt
    assert "turn 1" not in prompt
    assert prompt.index("User: turn 2") < prompt.index("Assistant: turn 3") < prompt.index("Assistant: turn 5")
    assert "CLARIFICATION FOLLOW-UP HANDLING" in prompt


def test_no_history_section_without_turns(sales_schema):
    prompt = PromptBuilder().build_prompt(sales_schema, None, None)

    assert "CONVERSATION HISTORY FOR CONTEXT" not in prompt


def test_prompt_is_deterministic(sales_schema):
    chart = ChartState("Sales.TotalSales", "Time.Month", "lineChart")
    history = [ChatTurn("user", "sales by month")]
    builder = PromptBuilder()

    assert builder.build_prompt(sales_schema, chart, history) == builder.build_prompt(
        sales_schema, chart, history
    )
