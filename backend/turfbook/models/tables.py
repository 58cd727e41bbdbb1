from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Turfs(Base):
    __tablename__ = 'turfs'

    id = Column(Text, primary_key=True)
    vendor_id = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    address = Column(Text)
    # hours before slot start a cancellation stays refundable; NULL = default
    cancellation_hours = Column(Integer)
    is_suspended = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    bookings = relationship('Bookings', back_populates='turf')


class SlotLocks(Base):
    __tablename__ = 'slot_locks'
    __table_args__ = (
        Index('ix_slot_locks_slot', 'vendor_id', 'turf_id', 'sport', 'date', 'time_slot', 'status'),
        Index('ix_slot_locks_status_expires', 'status', 'expires_at'),
    )

    id = Column(Text, primary_key=True)
    vendor_id = Column(Text, nullable=False)
    turf_id = Column(Text, nullable=False)
    sport = Column(Text, nullable=False)
    date = Column(Text, nullable=False)
    time_slot = Column(Text, nullable=False)
    user_id = Column(Text, nullable=False, index=True)
    locked_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'locked'"))
    confirmed_at = Column(DateTime)


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        # one confirmed booking per slot
        Index(
            'uq_bookings_confirmed_slot',
            'vendor_id', 'turf_id', 'sports', 'date', 'time_slot',
            unique=True,
            sqlite_where=text("booking_status = 'confirmed'"),
            postgresql_where=text("booking_status = 'confirmed'"),
        ),
        Index('ix_bookings_user_created', 'user_id', 'created_at'),
    )

    id = Column(Text, primary_key=True)
    order_id = Column(Text)
    vendor_id = Column(Text, nullable=False)
    turf_id = Column(ForeignKey('turfs.id'), nullable=False)
    sports = Column(Text, nullable=False)
    date = Column(Text, nullable=False)
    time_slot = Column(Text, nullable=False)
    user_id = Column(Text, nullable=False)
    lock_id = Column(Text)
    amount = Column(Float, nullable=False)
    payment_status = Column(Text, nullable=False, server_default=text("'confirmed'"))
    booking_status = Column(Text, nullable=False, server_default=text("'confirmed'"))
    refund_status = Column(Text)
    cancelled_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False)

    turf = relationship('Turfs', back_populates='bookings')


class SlotStatus(Base):
    __tablename__ = 'slot_status'
    __table_args__ = (
        UniqueConstraint('turf_id', 'date', 'sport', 'time_slot'),
    )

    id = Column(Integer, primary_key=True)
    turf_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)
    sport = Column(Text, nullable=False)
    time_slot = Column(Text, nullable=False)
    booked = Column(Integer, nullable=False, server_default=text('0'))
    booking_id = Column(Text)
    user_id = Column(Text)
    updated_at = Column(DateTime)
