"""Races against one file-backed database from real worker threads."""
import threading
from concurrent.futures import ThreadPoolExecutor

from conftest import stay
from hotel_booking.services.errors import CouponRejection, ErrorKind

WORKERS = 8


def race(n, fn):
    barrier = threading.Barrier(n)

    def run(i):
        barrier.wait()
        return fn(i)

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(run, range(n)))


def test_only_one_of_many_identical_requests_is_admitted(reservations, room):
    check_in, check_out = stay(10, nights=2)

    results = race(WORKERS, lambda i: reservations.create_booking(f"guest-{i}", room.id, check_in, check_out))

    winners = [r for r in results if r.ok]
    losers = [r for r in results if not r.ok]
    assert len(winners) == 1
    assert len(losers) == WORKERS - 1
    assert all(r.kind is ErrorKind.ROOM_CONFLICT for r in losers)


def test_staggered_overlaps_admit_a_non_overlapping_subset(reservations, room):
    # Stays starting on consecutive days, two nights each: neighbours overlap.
    results = race(WORKERS, lambda i: reservations.create_booking(f"guest-{i}", room.id, *stay(10 + i, nights=2)))

    admitted = sorted((r.value.check_in, r.value.check_out) for r in results if r.ok)
    assert admitted
    for (_, prev_out), (next_in, _) in zip(admitted, admitted[1:]):
        assert prev_out <= next_in
    assert all(r.kind is ErrorKind.ROOM_CONFLICT for r in results if not r.ok)


def test_coupon_is_redeemed_exactly_once_under_contention(reservations, coupons, make_room, make_coupon, get_coupon_row):
    coupon = make_coupon(code="ONCE")
    rooms = [make_room(number=str(100 + i)) for i in range(2)]
    bookings = [reservations.create_booking("guest-1", r.id, *stay(10)).value for r in rooms]

    results = race(2, lambda i: coupons.redeem_coupon("once", "guest-1", bookings[i].id))

    assert sum(r.ok for r in results) == 1
    loser = next(r for r in results if not r.ok)
    assert loser.kind is ErrorKind.INVALID_COUPON
    assert loser.reason is CouponRejection.ALREADY_USED
    assert get_coupon_row(coupon.id).is_used is True

    discounted = [reservations.get_booking(b.id).value for b in bookings]
    assert sorted(b.coupon_id is not None for b in discounted) == [False, True]
