from design_agent.agent.tools import GenerateDesignImage, find_directive, parse_tool_call, parse_tool_calls


def _call(name, arguments):
    return {"type": "function", "function": {"name": name, "arguments": arguments}}


def test_parse_generate_design_image():
    directive = parse_tool_call(
        _call("generate_design_image", '{"prompt": " dark dashboard ", "title": "Admin", "description": "Charts"}')
    )
    assert directive == GenerateDesignImage(prompt="dark dashboard", title="Admin", description="Charts")


def test_unknown_name_is_not_a_directive():
    assert parse_tool_call(_call("send_email", "{}")) is None


def test_malformed_arguments_become_empty_fields():
    directive = parse_tool_call(_call("generate_design_image", "{not json"))
    assert directive == GenerateDesignImage()


def test_non_string_fields_are_ignored():
    directive = parse_tool_call(_call("generate_design_image", {"prompt": 42, "title": "T"}))
    assert directive == GenerateDesignImage(prompt="", title="T", description="")


def test_parse_tool_calls_skips_garbage():
    calls = parse_tool_calls(
        [None, {"function": "nope"}, _call("other", "{}"), _call("generate_design_image", "{}")]
    )
    assert calls == [GenerateDesignImage()]
    assert parse_tool_calls(None) == []


def test_find_directive():
    directive = GenerateDesignImage(prompt="p")
    assert find_directive([directive], GenerateDesignImage) is directive
    assert find_directive([], GenerateDesignImage) is None
