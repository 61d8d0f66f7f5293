"""Transit entities materialized from the realtime feed."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from congestion_recorder.models.base import Base

# Many-to-many link between route patterns and the stops seen on them.
route_pattern_stops = Table(
    "route_pattern_stops",
    Base.metadata,
    Column(
        "route_pattern_id",
        String(64),
        ForeignKey("route_patterns.route_pattern_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "stop_id",
        String(64),
        ForeignKey("stops.stop_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("ix_route_pattern_stops_stop_id", "stop_id"),
)


class RoutePattern(Base):
    """Logical grouping of trips sharing one stop sequence (e.g. ``HSL:1007:0:01``)."""

    __tablename__ = "route_patterns"

    route_pattern_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    stops: Mapped[list[Stop]] = relationship(
        "Stop", secondary=route_pattern_stops, back_populates="route_patterns", lazy="raise"
    )


class Stop(Base):
    """Transit stop identified by its routing API id (e.g. ``HSL:1140447``)."""

    __tablename__ = "stops"

    stop_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    route_patterns: Mapped[list[RoutePattern]] = relationship(
        "RoutePattern", secondary=route_pattern_stops, back_populates="stops", lazy="raise"
    )


class Trip(Base):
    """A single scheduled run, identified by its routing API id."""

    __tablename__ = "trips"

    trip_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
