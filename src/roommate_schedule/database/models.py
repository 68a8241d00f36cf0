from typing import Optional

from sqlalchemy import BigInteger, Boolean, Date, DateTime, ForeignKeyConstraint, Identity, Index, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import uuid

class Base(DeclarativeBase):
    pass


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('name', name='users_name_key')
    )

    id: Mapped[int] = mapped_column(BigInteger, Identity(start=1, increment=1), primary_key=True)
    name: Mapped[str] = mapped_column(Text)
    color: Mapped[str] = mapped_column(String(16), server_default=text("'#BB86FC'::character varying"))

    schedules: Mapped[list['Schedules']] = relationship('Schedules', back_populates='user')


class Schedules(Base):
    __tablename__ = 'schedules'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='schedules_user_id_fkey'),
        PrimaryKeyConstraint('id', name='schedules_pkey'),
        Index('idx_schedules_user_date', 'user_id', 'date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, server_default=text('gen_random_uuid()'))
    user_id: Mapped[int] = mapped_column(BigInteger)
    day: Mapped[Optional[str]] = mapped_column(Text)
    start_time: Mapped[str] = mapped_column(String(8))
    end_time: Mapped[str] = mapped_column(String(8))
    label: Mapped[str] = mapped_column(Text, server_default=text("''::text"))
    all_day: Mapped[bool] = mapped_column(Boolean, server_default=text('false'))
    date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    created_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True), server_default=text('now()'))

    user: Mapped['Users'] = relationship('Users', back_populates='schedules')
