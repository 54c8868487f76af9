"""Tests for SafeInt checked arithmetic."""

import pytest

from cpamm.safe_int import (
    DivisionByZero,
    S,
    SafeInt,
    SafeIntError,
    UintOverflow,
    Underflow,
)


class TestSafeIntConstruction:
    """Tests for SafeInt construction."""

    def test_from_int(self):
        """Construct from int."""
        assert SafeInt(42).value == 42

    def test_from_safeint(self):
        """Construct from another SafeInt."""
        assert SafeInt(SafeInt(42)).value == 42

    def test_from_invalid_type_raises(self):
        """SafeInt rejects floats, strings and bools."""
        with pytest.raises(TypeError):
            SafeInt("42")  # type: ignore
        with pytest.raises(TypeError):
            SafeInt(3.14)  # type: ignore
        with pytest.raises(TypeError):
            SafeInt(True)

    def test_alias_s(self):
        """S is an alias for SafeInt."""
        assert S is SafeInt


class TestSafeIntArithmetic:
    """Tests for SafeInt arithmetic operations."""

    def test_add(self):
        """Addition with SafeInt and int operands."""
        assert (S(10) + S(5)).value == 15
        assert (S(10) + 5).value == 15
        assert (5 + S(10)).value == 15

    def test_sub(self):
        """Subtraction that stays non-negative."""
        assert (S(10) - S(3)).value == 7
        assert (10 - S(3)).value == 7
        assert (S(5) - 5).value == 0

    def test_sub_underflow_raises(self):
        """Subtraction below zero raises Underflow."""
        with pytest.raises(Underflow) as exc_info:
            S(5) - S(10)
        assert "5 - 10" in str(exc_info.value)

    def test_rsub_underflow_raises(self):
        """int - SafeInt below zero raises Underflow."""
        with pytest.raises(Underflow):
            5 - S(10)

    def test_mul(self):
        """Multiplication with SafeInt and int operands."""
        assert (S(6) * S(7)).value == 42
        assert (6 * S(7)).value == 42

    def test_mul_beyond_uint256(self):
        """Intermediate products are unbounded; width is checked on exit."""
        big = 2**200
        assert (S(big) * big).value == big * big

    def test_floordiv(self):
        """Floor division with SafeInt and int divisors."""
        assert (S(10) // S(3)).value == 3
        assert (S(10) // 3).value == 3

    def test_floordiv_by_zero_raises(self):
        """Dividing by zero raises DivisionByZero."""
        with pytest.raises(DivisionByZero) as exc_info:
            S(10) // S(0)
        assert "Division by zero" in str(exc_info.value)


class TestSafeIntComparison:
    """Tests for SafeInt comparison operations."""

    def test_eq(self):
        """Equality against SafeInt and int."""
        assert S(5) == S(5)
        assert S(5) == 5
        assert S(5) != 6

    def test_ordering(self):
        """Ordering against SafeInt and int."""
        assert S(5) < S(6)
        assert S(5) <= 5
        assert S(6) > 5
        assert S(6) >= S(6)

    def test_bool(self):
        """Zero is falsy."""
        assert bool(S(1)) is True
        assert bool(S(0)) is False

    def test_hash(self):
        """Equal values hash alike."""
        assert {S(42): "value"}[S(42)] == "value"


class TestSafeIntNamedOps:
    """Tests for SafeInt named operations."""

    def test_sqrt_floors(self):
        """Square root rounds down."""
        assert S(20000).sqrt().value == 141
        assert S(4 * 10**36).sqrt().value == 2 * 10**18
        assert S(0).sqrt().value == 0

    def test_sqrt_negative_raises(self):
        """Square root of a negative raises Underflow."""
        with pytest.raises(Underflow):
            SafeInt(-1).sqrt()

    def test_min(self):
        """min with SafeInt and int."""
        assert S(10).min(5).value == 5
        assert S(5).min(S(10)).value == 5

    def test_wrapping_add(self):
        """Addition wraps modulo 2**bits."""
        assert S(2**256 - 1).wrapping_add(2).value == 1
        assert S(2**32 - 1).wrapping_add(1, bits=32).value == 0
        assert S(10).wrapping_add(5).value == 15


class TestSafeIntUintBounds:
    """Tests for fixed-width unsigned bounds."""

    def test_to_uint_valid(self):
        """Values in range pass through."""
        assert S(0).to_uint(112) == 0
        assert S(2**112 - 1).to_uint(112) == 2**112 - 1

    def test_to_uint_overflow_raises(self):
        """2**112 does not fit in uint112."""
        with pytest.raises(UintOverflow) as exc_info:
            S(2**112).to_uint(112)
        assert "uint112" in str(exc_info.value)

    def test_to_uint_negative_raises(self):
        """Negative values are never uints."""
        with pytest.raises(UintOverflow):
            SafeInt(-1).to_uint()


class TestSafeIntExceptionHierarchy:
    """All SafeInt errors are ArithmeticErrors."""

    @pytest.mark.parametrize("error", [DivisionByZero, Underflow, UintOverflow])
    def test_is_safeint_error(self, error):
        """Every SafeInt error is an ArithmeticError."""
        assert issubclass(error, SafeIntError)
        assert issubclass(error, ArithmeticError)
