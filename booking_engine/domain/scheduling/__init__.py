"""
Scheduling Domain

Availability resolution and booking conflict prevention.

Structure:
```
booking_engine/domain/scheduling/
├── __init__.py
├── weekly_schedule.py      # Recurring weekly windows, HH:MM <-> minutes
├── slot_generator.py       # Candidate start times for one date
├── intersector.py          # Service windows ∩ professional windows
├── conflict_checker.py     # Half-open overlap against occupying bookings
├── aggregator.py           # Per-slot availability, "any professional" mode
├── repository.py           # Window/booking queries and resource locks
├── availability_service.py # Availability query (read-only, lock-free)
├── booking_service.py      # Commit guard, status changes, deletion
├── schedule_service.py     # Window configuration and validation
├── schemas.py              # Request/response schemas
├── router_public.py        # Client-facing endpoints
└── router_tenant.py        # Tenant-authenticated endpoints
```

The pure modules (weekly_schedule, slot_generator, intersector,
conflict_checker, aggregator) never touch the database. All instants they
see are naive UTC.
"""
