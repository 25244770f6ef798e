from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By

from selfheal.core.document import SeleniumDocument
from selfheal.core.exceptions import LocatorSyntaxError
from selfheal.core.locators import (
    ROLE_XPATHS,
    attribute_equals_xpath,
    attribute_selector,
    class_selector,
    compile_locator,
    first_of_kind,
    infer_selector_type,
    role_selector,
    split_chain,
    text_selector,
    xpath_literal,
)
from tests.helpers import FakeElement


def test_infer_selector_type():
    assert infer_selector_type("#login") == "css"
    assert infer_selector_type("//button") == "xpath"
    assert infer_selector_type("(//li)[1]") == "xpath"
    assert infer_selector_type('text="Save"') == "text"
    assert infer_selector_type("role=button") == "role"


def test_compile_css_with_filters():
    plan = compile_locator(".todo-list li >> visible=true >> nth=-1")
    assert plan.by == By.CSS_SELECTOR
    assert plan.value == ".todo-list li"
    assert plan.filters == [("visible", "true"), ("nth", "-1")]


def test_compile_role_with_name():
    plan = compile_locator('role=button[name="Add \\"todo\\""]')
    assert plan.by == By.XPATH
    assert plan.value == ROLE_XPATHS["button"]
    assert plan.accessible_name == 'Add "todo"'


def test_compile_text_builds_case_insensitive_xpath():
    plan = compile_locator('text="Clear  Completed"')
    assert plan.by == By.XPATH
    assert "'clear completed'" in plan.value
    assert "translate(normalize-space(.)" in plan.value


@pytest.mark.parametrize(
    "expression",
    ["", "#a >> ", "#a >> nth=first", "#a >> visible=maybe", "#a >> shadow=true", "role=widget", 'text=""'],
)
def test_compile_rejects_malformed_expressions(expression):
    with pytest.raises(LocatorSyntaxError):
        compile_locator(expression)


def test_split_chain_ignores_separators_inside_quotes():
    assert split_chain('text="a >> b" >> nth=0') == ['text="a >> b"', "nth=0"]


def test_selector_builders_escape_values():
    assert attribute_selector("placeholder", 'Say "hi"') == '[placeholder="Say \\"hi\\""]'
    assert class_selector("2col") == ".\\32 col"
    assert class_selector("todo:done") == ".todo\\:done"
    assert text_selector("  Buy   milk ") == 'text="Buy milk"'
    assert role_selector("textbox") == "role=textbox"
    assert role_selector("link", "Active") == 'role=link[name="Active"]'


def test_xpath_literal_handles_both_quote_kinds():
    assert xpath_literal("plain") == "'plain'"
    assert xpath_literal("it's") == '"it\'s"'
    assert xpath_literal("it's \"x\"") == "concat('it', \"'\", 's \"x\"')"


def test_first_of_kind():
    assert first_of_kind("li.todo") == "li.todo:first-of-type"
    assert first_of_kind("//ul/li") == "//ul/li[1]"
    assert first_of_kind("(//li)") is None
    assert first_of_kind("li >> visible=true") is None
    assert first_of_kind('text="x"') is None


def test_selenium_document_applies_chain_filters():
    hidden = FakeElement("button", text="Hidden", visible=False)
    shown = FakeElement("button", text="Save")
    other = FakeElement("button", text="Cancel")
    driver = MagicMock()
    driver.find_elements.return_value = [hidden, shown, other]
    document = SeleniumDocument(driver)

    assert document.locate("button >> visible=true").count() == 2
    driver.find_elements.assert_called_with(By.CSS_SELECTOR, "button")
    assert document.locate("button >> visible=true >> nth=0").first() is shown
    assert document.locate('button >> has-text="canc"').all() == [other]
    assert document.locate("button >> nth=7").count() == 0


def test_selenium_document_filters_role_by_accessible_name():
    labelled = FakeElement("button", text="", attributes={"aria-label": "Add todo item"})
    texted = FakeElement("button", text="Delete")
    driver = MagicMock()
    driver.find_elements.return_value = [labelled, texted]
    document = SeleniumDocument(driver)

    assert document.locate('role=button[name="add todo"]').all() == [labelled]
    driver.find_elements.assert_called_with(By.XPATH, ROLE_XPATHS["button"])


def test_selenium_document_first_raises_when_empty():
    driver = MagicMock()
    driver.find_elements.return_value = []
    driver.page_source = "<html></html>"
    document = SeleniumDocument(driver)
    with pytest.raises(NoSuchElementException):
        document.locate("#missing").first()
    assert document.content() == "<html></html>"


def test_attribute_equals_xpath_folds_case_and_spacing():
    expression = attribute_equals_xpath("value", "  Save   Draft ")
    assert expression == (
        "//*[translate(normalize-space(@value), 'ABCDEFGHIJKLMNOPQRSTUVWXYZ', "
        "'abcdefghijklmnopqrstuvwxyz')='save draft']"
    )
    assert compile_locator(f"{expression} >> visible=true").by == By.XPATH
