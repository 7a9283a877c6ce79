# Booking flow: pricing fetch, hold/confirm/pay orchestration, dashboard aggregation.
