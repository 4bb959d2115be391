from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from storefront.data.models import CartModel, CouponModel
from storefront.domain.caller import Caller
from storefront.domain.errors import (
    ConflictError,
    ExpiredError,
    ForbiddenError,
    MinimumPurchaseError,
    NotFoundError,
    UsageExceededError,
    ValidationError,
)
from storefront.domain.schemas import CouponCreate, CouponUpdate
from storefront.services.cart_service import CartService
from storefront.services.coupon_service import CouponService, is_expired
from storefront.services.order_service import OrderService
from tests.factories import caller_for, make_coupon, make_product, make_user

ADMIN = Caller(user_id="admin", is_admin=True)


@pytest.fixture
def caller(db):
    return caller_for(make_user(db))


@pytest.fixture
def filled_cart(db, caller):
    """Cart worth 25.00: two mugs at 10 and one pen at 5."""
    carts = CartService(db)
    carts.add_item(caller, make_product(db, "Mug", "10.00").id, 2)
    carts.add_item(caller, make_product(db, "Pen", "5.00").id, 1)
    return caller


#validate
def test_validate_returns_discount(db):
    make_coupon(db, "SAVE10", "percentage", "10")

    result = CouponService(db).validate("SAVE10", Decimal("25"))

    assert result["coupon"].code == "SAVE10"
    assert result["discount"] == Decimal("2.50")


def test_validate_unknown_or_inactive(db):
    make_coupon(db, "OFF", is_active=False)
    svc = CouponService(db)

    with pytest.raises(NotFoundError):
        svc.validate("NOPE", 10)
    with pytest.raises(NotFoundError):
        svc.validate("OFF", 10)


def test_validate_expired(db):
    make_coupon(db, "OLD", expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    with pytest.raises(ExpiredError):
        CouponService(db).validate("OLD", 10)


def test_validate_usage_exceeded(db):
    make_coupon(db, "ONCE", max_uses=1, times_used=1)
    with pytest.raises(UsageExceededError):
        CouponService(db).validate("ONCE", 10)


def test_validate_minimum_purchase(db):
    make_coupon(db, "BIG", min_purchase="100")
    with pytest.raises(MinimumPurchaseError) as exc:
        CouponService(db).validate("BIG", 99)
    assert exc.value.min_purchase == Decimal("100")


def test_is_expired_treats_naive_values_as_utc():
    now = datetime(2026, 1, 1, 12, tzinfo=timezone.utc)
    assert is_expired(datetime(2026, 1, 1, 11), now)
    assert not is_expired(datetime(2026, 1, 1, 13), now)
    assert not is_expired(None, now)


def test_check_reports_rule_failures_as_invalid(db):
    make_coupon(db, "BIG", min_purchase="100")
    make_coupon(db, "ONCE", max_uses=1, times_used=1)
    svc = CouponService(db)

    low = svc.check("BIG", Decimal("50"))
    assert low["valid"] is False
    assert low["min_purchase"] == Decimal("100")

    used = svc.check("ONCE", Decimal("50"))
    assert used["valid"] is False
    assert "min_purchase" not in used

    ok = svc.check("BIG", Decimal("150"))
    assert ok["valid"] is True
    assert ok["discount"] == Decimal("15.00")


def test_check_requires_code(db):
    with pytest.raises(ValidationError):
        CouponService(db).check("", 10)


#apply / remove
def test_apply_counts_one_use(db, filled_cart):
    coupon = make_coupon(db, "SAVE10", "percentage", "10")

    result = CouponService(db).apply(filled_cart, "SAVE10")

    assert result["error"] is None
    assert result["cart"]["applied_coupon"] is True
    assert result["cart"]["coupon_code"] == "SAVE10"
    db.refresh(coupon)
    assert coupon.times_used == 1


def test_fixed_coupon_clamps_to_subtotal(db, filled_cart):
    make_coupon(db, "HUNDRED", "fixed", "100")

    cart = CouponService(db).apply(filled_cart, "HUNDRED")["cart"]

    assert cart["discount"] == Decimal("25.00")
    assert cart["total"] == Decimal("0.00")


def test_apply_validates_against_current_subtotal(db, filled_cart):
    make_coupon(db, "BIG", min_purchase="30")

    with pytest.raises(MinimumPurchaseError):
        CouponService(db).apply(filled_cart, "BIG")

    cart = db.query(CartModel).one()
    assert cart.applied_coupon is False


def test_apply_requires_code(db, filled_cart):
    with pytest.raises(ValidationError):
        CouponService(db).apply(filled_cart, "   ")


def test_apply_without_cart(db, caller):
    make_coupon(db, "SAVE10")
    with pytest.raises(NotFoundError):
        CouponService(db).apply(caller, "SAVE10")


def test_apply_same_coupon_twice(db, filled_cart):
    coupon = make_coupon(db, "SAVE10")
    svc = CouponService(db)
    svc.apply(filled_cart, "SAVE10")

    with pytest.raises(ValidationError):
        svc.apply(filled_cart, "SAVE10")

    db.refresh(coupon)
    assert coupon.times_used == 1


def test_switching_coupon_releases_the_previous_one(db, filled_cart):
    first = make_coupon(db, "SAVE10")
    second = make_coupon(db, "FIVE", "fixed", "5")
    svc = CouponService(db)

    svc.apply(filled_cart, "SAVE10")
    cart = svc.apply(filled_cart, "FIVE")["cart"]

    assert cart["coupon_code"] == "FIVE"
    assert cart["discount"] == Decimal("5.00")
    db.refresh(first)
    db.refresh(second)
    assert first.times_used == 0
    assert second.times_used == 1


def test_cap_reached_concurrently_keeps_cart_and_reports(db, filled_cart, monkeypatch):
    coupon = make_coupon(db, "ONCE", max_uses=1)
    svc = CouponService(db)
    monkeypatch.setattr(svc.repo, "increment_usage", lambda coupon_id: 0)

    result = svc.apply(filled_cart, "ONCE")

    assert result["error"]
    assert result["cart"]["applied_coupon"] is True
    db.refresh(coupon)
    assert coupon.times_used == 0


def test_max_uses_is_never_exceeded(db, filled_cart):
    coupon = make_coupon(db, "ONCE", max_uses=1)
    svc = CouponService(db)
    svc.apply(filled_cart, "ONCE")

    other = caller_for(make_user(db, "Bia"))
    CartService(db).add_item(other, make_product(db, "Cup", "8.00").id, 1)

    with pytest.raises(UsageExceededError):
        svc.apply(other, "ONCE")

    #the guarded update refuses even if validation was bypassed
    assert svc.repo.increment_usage(coupon.id) == 0
    db.rollback()
    db.refresh(coupon)
    assert coupon.times_used == 1


def test_remove_restores_totals_and_counter(db, filled_cart):
    coupon = make_coupon(db, "SAVE10")
    svc = CouponService(db)
    svc.apply(filled_cart, "SAVE10")

    result = svc.remove(filled_cart)

    assert result["cart"]["discount"] == 0
    assert result["cart"]["total"] == Decimal("25.00")
    assert result["cart"]["coupon_code"] == ""
    db.refresh(coupon)
    assert coupon.times_used == 0


def test_remove_without_coupon(db, filled_cart):
    with pytest.raises(ValidationError):
        CouponService(db).remove(filled_cart)


def test_counter_is_floored_at_zero(db):
    coupon = make_coupon(db, "ZERO", times_used=0)
    svc = CouponService(db)

    assert svc.repo.decrement_usage("ZERO") == 0
    svc.repo.commit()

    db.refresh(coupon)
    assert coupon.times_used == 0


#admin
def test_admin_crud(db):
    svc = CouponService(db)

    created = svc.create_coupon(
        ADMIN,
        CouponCreate(code="WELCOME", discount_type="fixed", discount_value=Decimal("15")),
    )
    assert created["times_used"] == 0
    assert [c["code"] for c in svc.list_coupons(ADMIN)] == ["WELCOME"]

    updated = svc.update_coupon(ADMIN, created["id"], CouponUpdate(discount_value=Decimal("20"), is_active=False))
    assert updated["discount_value"] == Decimal("20")
    assert updated["is_active"] is False
    assert updated["code"] == "WELCOME"

    svc.delete_coupon(ADMIN, created["id"])
    with pytest.raises(NotFoundError):
        svc.get_coupon(ADMIN, created["id"])


def test_create_rejects_duplicates_and_bad_rules(db):
    make_coupon(db, "DUP")
    svc = CouponService(db)

    with pytest.raises(ConflictError):
        svc.create_coupon(ADMIN, CouponCreate(code="DUP", discount_type="fixed", discount_value=Decimal("1")))
    with pytest.raises(ValidationError):
        svc.create_coupon(ADMIN, CouponCreate(code="X", discount_type="bogo", discount_value=Decimal("1")))
    with pytest.raises(ValidationError):
        svc.create_coupon(ADMIN, CouponCreate(code="X", discount_type="fixed", discount_value=Decimal("0")))
    with pytest.raises(ValidationError):
        svc.create_coupon(
            ADMIN,
            CouponCreate(code="X", discount_type="fixed", discount_value=Decimal("1"), min_purchase=Decimal("-1")),
        )
    with pytest.raises(ValidationError):
        svc.create_coupon(ADMIN, CouponCreate(code="", discount_type="fixed", discount_value=Decimal("1")))


def test_update_rechecks_code_uniqueness(db):
    make_coupon(db, "TAKEN")
    other = make_coupon(db, "MINE")

    with pytest.raises(ConflictError):
        CouponService(db).update_coupon(ADMIN, other.id, CouponUpdate(code="TAKEN"))


def test_coupon_applied_to_carts_keeps_its_code(db, filled_cart):
    coupon = make_coupon(db, "SAVE10")
    svc = CouponService(db)
    svc.apply(filled_cart, "SAVE10")

    with pytest.raises(ConflictError):
        svc.update_coupon(ADMIN, coupon.id, CouponUpdate(code="SAVE15"))
    with pytest.raises(ConflictError):
        svc.delete_coupon(ADMIN, coupon.id)

    #other fields stay editable
    assert svc.update_coupon(ADMIN, coupon.id, CouponUpdate(discount_value=Decimal("20")))["code"] == "SAVE10"

    svc.remove(filled_cart)
    assert svc.update_coupon(ADMIN, coupon.id, CouponUpdate(code="SAVE15"))["code"] == "SAVE15"
    svc.delete_coupon(ADMIN, coupon.id)
    assert db.query(CouponModel).count() == 0


def test_admin_operations_need_admin(db, caller):
    with pytest.raises(ForbiddenError):
        CouponService(db).list_coupons(caller)


#reconcile
def test_reconcile_counts_carts_and_orders(db, filled_cart):
    coupon = make_coupon(db, "SAVE10")
    svc = CouponService(db)
    svc.apply(filled_cart, "SAVE10")
    OrderService(db).create_order(filled_cart, "", "pickup", "pix", "paid")

    other = caller_for(make_user(db, "Bia"))
    CartService(db).add_item(other, make_product(db, "Cup", "8.00").id, 1)
    svc.apply(other, "SAVE10")

    db.query(CouponModel).filter(CouponModel.id == coupon.id).update({"times_used": 9})
    db.commit()

    assert svc.reconcile_usage() == 1
    db.refresh(coupon)
    assert coupon.times_used == 2


def test_reconcile_caps_at_max_uses(db, filled_cart):
    coupon = make_coupon(db, "CAPPED", max_uses=1)
    svc = CouponService(db)
    svc.apply(filled_cart, "CAPPED")
    OrderService(db).create_order(filled_cart, "", "pickup", "pix", "paid")

    other = caller_for(make_user(db, "Bia"))
    cart = CartService(db).get_or_create_cart(other)
    cart.applied_coupon = True
    cart.coupon_code = "CAPPED"
    db.commit()

    svc.reconcile_usage()

    db.refresh(coupon)
    assert coupon.times_used == 1
