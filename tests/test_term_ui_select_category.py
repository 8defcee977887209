import contextlib

from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from statement_import.categorize import categories_for
from statement_import.config import IngestConfig
from statement_import.models import Direction
from statement_import.pipeline import IngestionPipeline
from statement_import.term_ui import format_preview_line, review_batch, select_category

EXPENSE = list(categories_for(Direction.EXPENSE))


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_enter_accepts_default():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_category(EXPENSE, default="Transport", session=sess) == "Transport"


def test_typed_value_is_canonicalized():
    with pipe_session() as (pipe, sess):
        # Ctrl-A (home), Ctrl-K (kill to end), type lower-case label, Enter
        pipe.send_text("\x01\x0bhousehold\r")
        assert select_category(EXPENSE, default="Transport", session=sess) == "Household"


def test_enter_completes_prefix():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bEnt\r")
        assert select_category(EXPENSE, default="Others", session=sess) == "Entertainment"


def test_unknown_value_is_rejected_until_corrected():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bSalary\r")  # not an expense category
        pipe.send_text("\x01\x0bFood\r")
        assert select_category(EXPENSE, default="Others", session=sess) == "Food"


def test_review_batch_applies_choices():
    batch = IngestionPipeline(IngestConfig()).build_batch(
        [
            {"Date": "2024-01-01", "Description": "Uber Trip", "Amount": "-10"},
            {"Date": "2024-01-02", "Description": "Payroll", "Amount": "100"},
        ]
    )
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bEntertainment\r")  # row 1: change
        pipe.send_text("\r")  # row 2: keep Salary
        changed = review_batch(batch, session=sess, on_line=lines.append)

    assert changed == 1
    assert [t.category for t in batch] == ["Entertainment", "Salary"]
    assert lines[0] == "1\t2024-01-01\tUber Trip\t10.00\tExpense\tTransport"
    assert format_preview_line(0, batch).endswith("\tEntertainment")
