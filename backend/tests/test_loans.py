# Overview: Pytest coverage for loan schedules, installment payments and loan lifecycle rules.

from datetime import date

import pytest

from shopledger.extensions import db
from shopledger.models import Loan, LoanInstallment
from shopledger.models.loans import (
    LOAN_ACTIVE,
    LOAN_COMPLETED,
    LOAN_DEFAULTED,
    LOAN_SUSPENDED,
    INSTALLMENT_PAID,
    INSTALLMENT_PARTIAL,
)
from shopledger.services import loan_service, ledger_store
from shopledger.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def customer(shop_a):
    return loan_service.create_customer(shop_a.id, "Bilal", phone="03001234567")


def _loan(shop_id, customer_id, **overrides):
    params = {
        "customer_id": customer_id,
        "loan_number": "L-0001",
        "principal_cents": 1_000_001,
        "total_installments": 3,
        "start_date": "2025-01-31",
    }
    params.update(overrides)
    return loan_service.create_loan(shop_id, **params)


def _assert_consistent(loan):
    installments = loan.installments
    assert loan.paid_amount_cents == sum(i.paid_amount_cents for i in installments)
    assert loan.remaining_amount_cents == loan.total_amount_cents - loan.paid_amount_cents
    assert loan.paid_installments == sum(1 for i in installments if i.status == INSTALLMENT_PAID)


class TestSchedule:

    def test_remainder_lands_on_last_installment(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)

        amounts = [i.amount_cents for i in loan.installments]
        assert amounts == [333_333, 333_333, 333_335]
        assert sum(amounts) == loan.total_amount_cents == 1_000_001
        assert loan.installment_amount_cents == 333_333
        assert loan.status == LOAN_ACTIVE
        assert loan.remaining_amount_cents == 1_000_001

    def test_due_dates_are_monthly_and_clamped(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)

        assert [i.due_date for i in loan.installments] == [
            date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30),
        ]
        assert loan.next_due_date == date(2025, 2, 28)
        assert loan.end_date == date(2025, 4, 30)

    def test_interest_rounds_half_up(self, shop_a, customer):
        # 1_000_001 * 250 / 10_000 = 25_000.025
        loan = _loan(shop_a.id, customer.id, interest_rate_bps=250)
        assert loan.total_amount_cents == 1_000_001 + 25_000

        loan = _loan(shop_a.id, customer.id, loan_number="L-0002", principal_cents=200, interest_rate_bps=250)
        assert loan.total_amount_cents == 205

    @pytest.mark.parametrize("overrides", [
        {"principal_cents": 0},
        {"principal_cents": 12.5},
        {"total_installments": 0},
        {"total_installments": 121},
        {"interest_rate_bps": -1},
        {"loan_number": "  "},
        {"start_date": "05/01/2025"},
    ])
    def test_invalid_loans_rejected(self, shop_a, customer, overrides):
        with pytest.raises(ValidationError):
            _loan(shop_a.id, customer.id, **overrides)
        assert db.session.query(Loan).count() == 0

    def test_duplicate_loan_number_is_a_conflict(self, shop_a, customer):
        _loan(shop_a.id, customer.id)
        with pytest.raises(ConflictError):
            _loan(shop_a.id, customer.id)

    def test_loan_numbers_are_per_shop(self, shop_a, shop_b, customer):
        other = loan_service.create_customer(shop_b.id, "Bilal")
        _loan(shop_a.id, customer.id)
        _loan(shop_b.id, other.id)

    def test_customer_from_other_shop_not_found(self, shop_b, customer):
        with pytest.raises(NotFoundError):
            _loan(shop_b.id, customer.id)


class TestInstallmentPayments:

    def test_partial_then_full_payment(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)
        first = loan.installments[0]

        loan = loan_service.record_installment_payment(shop_a.id, loan.id, first.id, 100_000, paid_date="2025-02-20")
        assert first.status == INSTALLMENT_PARTIAL
        assert loan.paid_installments == 0
        assert loan.next_due_date == date(2025, 2, 28)
        _assert_consistent(loan)

        loan = loan_service.record_installment_payment(shop_a.id, loan.id, first.id, 233_333)
        assert first.status == INSTALLMENT_PAID
        assert loan.paid_installments == 1
        assert loan.next_due_date == date(2025, 3, 31)
        assert loan.remaining_amount_cents == 1_000_001 - 333_333
        _assert_consistent(loan)

    def test_overpayment_rejected(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)
        first = loan.installments[0]

        with pytest.raises(ValidationError):
            loan_service.record_installment_payment(shop_a.id, loan.id, first.id, 333_334)
        assert first.paid_amount_cents == 0

    def test_paid_installment_is_a_conflict(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)
        first = loan.installments[0]
        loan_service.record_installment_payment(shop_a.id, loan.id, first.id, 333_333)

        with pytest.raises(ConflictError):
            loan_service.record_installment_payment(shop_a.id, loan.id, first.id, 1)

    def test_paying_everything_completes_the_loan(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)
        for installment in list(loan.installments):
            loan = loan_service.record_installment_payment(
                shop_a.id, loan.id, installment.id, installment.amount_cents,
            )

        assert loan.status == LOAN_COMPLETED
        assert loan.remaining_amount_cents == 0
        assert loan.next_due_date is None
        _assert_consistent(loan)

        # Completed loans drop out of the closing's loan figure
        assert ledger_store.sum_remaining_loan_balance_by_shop(shop_a.id)["total_remaining_loans_cents"] == 0

        with pytest.raises(ConflictError):
            loan_service.record_installment_payment(shop_a.id, loan.id, loan.installments[0].id, 1)

    def test_installment_of_another_loan_not_found(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)
        other = _loan(shop_a.id, customer.id, loan_number="L-0002")

        with pytest.raises(NotFoundError):
            loan_service.record_installment_payment(shop_a.id, loan.id, other.installments[0].id, 1)

    def test_loan_of_another_shop_not_found(self, shop_a, shop_b, customer):
        loan = _loan(shop_a.id, customer.id)
        with pytest.raises(NotFoundError):
            loan_service.record_installment_payment(shop_b.id, loan.id, loan.installments[0].id, 1)


class TestLoanLifecycle:

    def test_unpaid_loan_can_be_deleted(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)
        loan_service.delete_loan(shop_a.id, loan.id)

        assert db.session.query(Loan).count() == 0
        assert db.session.query(LoanInstallment).count() == 0

    def test_delete_blocked_after_payment(self, shop_a, customer):
        loan = _loan(shop_a.id, customer.id)
        loan_service.record_installment_payment(shop_a.id, loan.id, loan.installments[0].id, 1_000)

        with pytest.raises(ConflictError):
            loan_service.delete_loan(shop_a.id, loan.id)

    def test_overdue_loans(self, shop_a, customer):
        _loan(shop_a.id, customer.id)
        _loan(shop_a.id, customer.id, loan_number="L-0002", start_date="2025-06-01")

        overdue = loan_service.list_overdue_loans(shop_a.id, as_of=date(2025, 3, 1))
        assert [loan.loan_number for loan in overdue] == ["L-0001"]

    def test_list_filters_by_status(self, shop_a, customer):
        _loan(shop_a.id, customer.id)
        assert loan_service.list_loans_page(shop_a.id, status="ACTIVE")["count"] == 1
        assert loan_service.list_loans_page(shop_a.id, status="COMPLETED")["loans"] == []
        with pytest.raises(ValidationError):
            loan_service.list_loans_page(shop_a.id, status="UNKNOWN")

    @pytest.mark.parametrize("paging", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_list_rejects_bad_paging(self, shop_a, paging):
        with pytest.raises(ValidationError):
            loan_service.list_loans_page(shop_a.id, **paging)


class TestLoanListingStats:

    @pytest.fixture
    def portfolio(self, shop_a, shop_b, customer):
        first = _loan(shop_a.id, customer.id)
        loan_service.record_installment_payment(shop_a.id, first.id, first.installments[0].id, 100_000)

        second = _loan(shop_a.id, customer.id, loan_number="L-0002", start_date="2025-06-01")
        second.status = LOAN_SUSPENDED
        db.session.commit()

        other = loan_service.create_customer(shop_b.id, "Hamza")
        _loan(shop_b.id, other.id, principal_cents=5_000_000)
        return first, second

    def test_stats_cover_the_whole_shop(self, shop_a, portfolio):
        result = loan_service.list_loans_page(shop_a.id, as_of=date(2025, 3, 1))

        assert result["stats"] == {
            "total_loans": 2,
            "total_amount_cents": 2_000_002,
            "total_paid_cents": 100_000,
            "total_remaining_cents": 1_900_002,
            "overdue_count": 1,
            "status_breakdown": {
                LOAN_ACTIVE: {"count": 1, "remaining_amount_cents": 900_001},
                LOAN_COMPLETED: {"count": 0, "remaining_amount_cents": 0},
                LOAN_SUSPENDED: {"count": 1, "remaining_amount_cents": 1_000_001},
                LOAN_DEFAULTED: {"count": 0, "remaining_amount_cents": 0},
            },
        }

    def test_pagination_is_newest_first(self, shop_a, portfolio):
        first_page = loan_service.list_loans_page(shop_a.id, page=1, limit=1)
        second_page = loan_service.list_loans_page(shop_a.id, page=2, limit=1)

        assert first_page["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
        assert [loan["loan_number"] for loan in first_page["loans"]] == ["L-0002"]
        assert [loan["loan_number"] for loan in second_page["loans"]] == ["L-0001"]
        assert second_page["stats"]["total_loans"] == 2

    def test_status_filter_narrows_totals_but_not_breakdown(self, shop_a, portfolio):
        result = loan_service.list_loans_page(shop_a.id, status=LOAN_SUSPENDED, as_of=date(2025, 12, 1))

        assert result["stats"]["total_loans"] == 1
        assert result["stats"]["total_remaining_cents"] == 1_000_001
        # Suspended loans are never counted overdue
        assert result["stats"]["overdue_count"] == 0
        assert result["stats"]["status_breakdown"][LOAN_ACTIVE]["count"] == 1
