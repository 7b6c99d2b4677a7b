"""
Tests for result types and exceptions (batchline.results, batchline.exceptions).
"""

from decimal import Decimal

from batchline.exceptions import ExternalError, InvariantError, LineError
from batchline.results import CloseBlocker, CloseCheck, IngredientProgress, OperationResult, format_kg


class TestFormatKg:
    def test_drops_trailing_zeros(self):
        assert format_kg(Decimal("1.000")) == "1"
        assert format_kg(Decimal("0.500")) == "0.5"

    def test_keeps_integer_digits(self):
        assert format_kg(Decimal("300")) == "300"

    def test_rounds_to_grams(self):
        assert format_kg(Decimal("0.33333")) == "0.333"


class TestIngredientProgress:
    def test_shortage_never_negative(self):
        progress = IngredientProgress("A", Decimal("10"), Decimal("12"), True, False)
        assert progress.shortage == Decimal("0")
        assert progress.percentage == 120

    def test_zero_requirement(self):
        assert IngredientProgress("A", Decimal("0"), Decimal("0"), True, False).percentage == 100


class TestCloseCheck:
    def test_codes_and_messages(self):
        check = CloseCheck(
            ok=False,
            blockers=[
                CloseBlocker(code="NIRS_PENDING", message="NIRS result pending"),
                CloseBlocker(code="SAMPLING_PENDING", message="sampling pending"),
            ],
        )

        assert check.codes == ["NIRS_PENDING", "SAMPLING_PENDING"]
        assert check.messages == ["NIRS result pending", "sampling pending"]
        assert check.as_dict()["blockers"][0] == {"code": "NIRS_PENDING", "message": "NIRS result pending"}

    def test_blocker_shortage(self):
        blocker = CloseBlocker(
            code="INGREDIENT_SHORT",
            message="B short by 1kg",
            ingredient="B",
            required=Decimal("200"),
            consumed=Decimal("199"),
        )
        assert blocker.as_dict()["shortage"] == "1"


class TestOperationResult:
    def test_ok(self):
        result = OperationResult.ok(42)
        assert result.success
        assert result.code is None
        assert result.kind is None

    def test_failed(self):
        result = OperationResult.failed(InvariantError("NEGATIVE_BALANCE", ingredient="A"))

        assert not result.success
        assert result.code == "NEGATIVE_BALANCE"
        assert result.kind == "invariant"
        assert result.message == "InvariantError(NEGATIVE_BALANCE: ingredient=A)"


class TestLineError:
    def test_kinds(self):
        assert LineError("X").kind == "validation"
        assert InvariantError("X").kind == "invariant"
        assert ExternalError("X").kind == "external"

    def test_as_dict(self):
        error = ExternalError("SOURCE_NOT_FOUND", ref="PAL-9")
        assert error.as_dict() == {"code": "SOURCE_NOT_FOUND", "kind": "external", "ref": "PAL-9"}

    def test_str_without_details(self):
        assert str(LineError("NO_MATERIALS")) == "LineError(NO_MATERIALS)"
