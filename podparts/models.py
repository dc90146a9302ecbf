from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class InventoryUnit(Base):
    __tablename__ = "inventory_units"
    __table_args__ = (Index("idx_inventory_units_status", "status"),)
    id = Column(Integer, primary_key=True)
    security_barcode = Column(String, unique=True, nullable=False)
    status = Column(String, nullable=False, default="in_stock")
    product_name = Column(String)
    generation = Column(String)
    part_type = Column(String)
    tracking_number = Column(String)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    status_history = relationship(
        "UnitStatusHistory",
        back_populates="unit",
        cascade="all, delete-orphan",
        order_by="UnitStatusHistory.id",
    )


class UnitStatusHistory(Base):
    __tablename__ = "unit_status_history"
    id = Column(Integer, primary_key=True)
    unit_id = Column(
        Integer,
        ForeignKey("inventory_units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_status = Column(String)
    to_status = Column(String, nullable=False)
    changed_at = Column(DateTime, nullable=False)
    reason = Column(Text)
    unit = relationship("InventoryUnit", back_populates="status_history")


class StockTake(Base):
    __tablename__ = "stock_takes"
    __table_args__ = (Index("idx_stock_takes_status", "status"),)
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    notes = Column(Text)
    status = Column(String, nullable=False, default="in_progress")
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime)
    # Frozen discrepancy report, written once when the stock take completes
    report = Column(JSON)
    scans = relationship(
        "StockTakeScan",
        back_populates="stock_take",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StockTakeScan.id",
    )
    resolutions = relationship(
        "DiscrepancyResolution",
        back_populates="stock_take",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DiscrepancyResolution.security_barcode",
    )


class StockTakeScan(Base):
    __tablename__ = "stock_take_scans"
    __table_args__ = (
        UniqueConstraint(
            "stock_take_id", "security_barcode", name="uq_stock_take_scans_barcode"
        ),
    )
    id = Column(Integer, primary_key=True)
    stock_take_id = Column(
        Integer,
        ForeignKey("stock_takes.id", ondelete="CASCADE"),
        nullable=False,
    )
    security_barcode = Column(String, nullable=False)
    scanned_at = Column(DateTime, nullable=False)
    # Snapshot of the unit at scan time
    found_in_database = Column(Boolean, nullable=False, default=False)
    status = Column(String)
    product_name = Column(String)
    generation = Column(String)
    stock_take = relationship("StockTake", back_populates="scans")


class DiscrepancyResolution(Base):
    __tablename__ = "discrepancy_resolutions"
    __table_args__ = (
        UniqueConstraint(
            "stock_take_id",
            "security_barcode",
            name="uq_discrepancy_resolutions_barcode",
        ),
    )
    id = Column(Integer, primary_key=True)
    stock_take_id = Column(
        Integer,
        ForeignKey("stock_takes.id", ondelete="CASCADE"),
        nullable=False,
    )
    security_barcode = Column(String, nullable=False)
    resolution_status = Column(String, nullable=False, default="pending")
    discrepancy_type = Column(String, nullable=False)
    notes = Column(Text)
    updated_at = Column(DateTime, nullable=False)
    stock_take = relationship("StockTake", back_populates="resolutions")
