from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def configure_sqlite_transactions(engine: Engine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so a read-then-write
    transaction can lose a lock upgrade instead of waiting. Taking the
    write lock up front makes concurrent writers queue on the busy timeout.
    """

    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin_immediate(connection):
        connection.exec_driver_sql('BEGIN IMMEDIATE')


def build_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith('sqlite'):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={
                'check_same_thread': False,
                'timeout': config.SQLITE_BUSY_TIMEOUT_SECONDS,
            },
        )
        configure_sqlite_transactions(engine)
        return engine

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


engine = build_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_scheduling_schema() -> None:
    global _scheduling_schema_checked

    if _scheduling_schema_checked:
        return

    with _schema_lock:
        if _scheduling_schema_checked:
            return

        inspector = inspect(engine)
        table_names = set(inspector.get_table_names())

        with engine.begin() as connection:
            if 'appointments' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
                migration_steps = [
                    ('slot_id', 'ALTER TABLE appointments ADD COLUMN slot_id INTEGER'),
                    ('payment_status', "ALTER TABLE appointments ADD COLUMN payment_status VARCHAR(16) DEFAULT 'pending'"),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_provider_date ON appointments(provider_id, date)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_date ON appointments(patient_id, date)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_status_date ON appointments(status, date)')
                )

            if 'appointment_slots' in table_names:
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_appointment_slots_bookable '
                        'ON appointment_slots(provider_id, is_available, is_blocked, date)'
                    )
                )

            if 'doctor_schedule' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_doctor_schedule_provider_day ON doctor_schedule(provider_id, weekday)')
                )

        _scheduling_schema_checked = True
