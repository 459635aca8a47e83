from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from tutordesk.core import config


engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, pool_pre_ping=True)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

BOOKING_OVERLAP_CONSTRAINT = 'bookings_no_overlap'

POSTGRES_BTREE_GIST_EXTENSION = 'CREATE EXTENSION IF NOT EXISTS btree_gist'

POSTGRES_BOOKING_OVERLAP_CONSTRAINT = (
    f'ALTER TABLE bookings ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT} '
    "EXCLUDE USING gist (tutor_id WITH =, tstzrange(start_ts, end_ts, '[)') WITH &&) "
    "WHERE (status = 'confirmed')"
)

SQLITE_BOOKING_OVERLAP_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS {BOOKING_OVERLAP_CONSTRAINT}
BEFORE INSERT ON bookings
WHEN NEW.status = 'confirmed' AND EXISTS (
    SELECT 1 FROM bookings
    WHERE tutor_id = NEW.tutor_id
      AND status = 'confirmed'
      AND start_ts < NEW.end_ts
      AND end_ts > NEW.start_ts
)
BEGIN
    SELECT RAISE(ABORT, '{BOOKING_OVERLAP_CONSTRAINT}');
END
"""

_schema_lock = Lock()
_booking_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_booking_schema(bind=None) -> None:
    """Bring tables created before the overlap constraint existed up to date.

    Freshly created tables get the constraint from the DDL listeners on the
    Booking model; this covers databases that already had a ``bookings`` table.
    """
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    bind = bind if bind is not None else engine

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(bind)
        table_names = inspector.get_table_names()

        if 'bookings' not in table_names:
            _booking_schema_checked = True
            return

        with bind.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_bookings_tutor_start ON bookings(tutor_id, start_ts)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_bookings_tutor_status ON bookings(tutor_id, status)')
            )
            if 'availability_rules' in table_names:
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_availability_rules_tutor_day '
                        'ON availability_rules(tutor_id, day_of_week)'
                    )
                )

            if bind.dialect.name == 'postgresql':
                existing = connection.execute(
                    text('SELECT 1 FROM pg_constraint WHERE conname = :name'),
                    {'name': BOOKING_OVERLAP_CONSTRAINT},
                ).first()
                if existing is None:
                    connection.execute(text(POSTGRES_BTREE_GIST_EXTENSION))
                    connection.execute(text(POSTGRES_BOOKING_OVERLAP_CONSTRAINT))
            elif bind.dialect.name == 'sqlite':
                connection.execute(text(SQLITE_BOOKING_OVERLAP_TRIGGER))

        _booking_schema_checked = True
