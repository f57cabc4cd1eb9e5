"""SQLAlchemy ORM models for packages, maintainers and funding sources"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, Float, DateTime, Integer, ForeignKey, Text, JSON, Enum
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from support_oss.domain.models import Category

Base = declarative_base()

sustainability_category = Enum(
    *[c.value for c in Category],
    name="sustainability_category",
)

FUNDING_PLATFORMS = ("opencollective", "github", "kofi", "patreon", "buymeacoffee", "custom")
ENRICHMENT_STATUSES = ("pending", "in_progress", "completed", "failed")


class Package(Base):
    """npm package with crawled signals and curated flags"""

    __tablename__ = "packages"

    name = Column(Text, primary_key=True)

    # Last computed score, cached for listing pages
    sustainability_score = Column(Integer, nullable=True)
    category = Column(sustainability_category, nullable=True)

    # npm
    latest_version = Column(Text, nullable=True)
    last_publish = Column(DateTime(timezone=True), nullable=True)
    weekly_downloads = Column(BigInteger, nullable=True)
    dependent_count = Column(Integer, nullable=True)
    npm_funding_url = Column(Text, nullable=True)

    # Repository
    repository_url = Column(Text, nullable=True)
    repository_owner = Column(Text, nullable=True)
    repository_name = Column(Text, nullable=True)

    # OpenCollective
    oc_slug = Column(Text, nullable=True)
    oc_balance = Column(Float, nullable=True)
    oc_yearly_income = Column(Float, nullable=True)
    oc_backers_count = Column(Integer, nullable=True)
    oc_goal_amount = Column(Float, nullable=True)
    oc_goal_progress = Column(Float, nullable=True)  # 0-100
    oc_top_sponsors = Column(JSON, nullable=True)  # [{name, imageUrl, profileUrl}]

    # GitHub Sponsors
    gh_sponsors_count = Column(Integer, nullable=True)
    gh_has_sponsors_listing = Column(Boolean, nullable=True)
    gh_top_sponsors = Column(JSON, nullable=True)  # [{name, avatarUrl, profileUrl}]

    # Curated flags
    corporate_backing = Column(Text, nullable=True)
    ai_disruption_flag = Column(Boolean, nullable=False, default=False)
    ai_disruption_note = Column(Text, nullable=True)

    # Maintainer-provided
    maintainer_status = Column(sustainability_category, nullable=True)
    maintainer_note = Column(Text, nullable=True)

    # Enrichment tracking
    enrichment_status = Column(Enum(*ENRICHMENT_STATUSES, name="enrichment_status"), nullable=False, default="pending")
    last_enriched_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    maintainers = relationship("PackageMaintainer", back_populates="package", cascade="all, delete-orphan")
    funding_sources = relationship("FundingSource", back_populates="package", cascade="all, delete-orphan")


class Maintainer(Base):
    """Person maintaining one or more packages"""

    __tablename__ = "maintainers"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=True)
    npm_username = Column(Text, nullable=True, index=True)
    github_username = Column(Text, nullable=True, unique=True)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    packages = relationship("PackageMaintainer", back_populates="maintainer")


class PackageMaintainer(Base):
    """Link between a package and a maintainer"""

    __tablename__ = "package_maintainers"

    package_name = Column(Text, ForeignKey("packages.name", ondelete="CASCADE"), primary_key=True)
    maintainer_id = Column(Text, ForeignKey("maintainers.id", ondelete="CASCADE"), primary_key=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    source = Column(Text, nullable=True)  # npm | github | claimed
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    package = relationship("Package", back_populates="maintainers")
    maintainer = relationship("Maintainer", back_populates="packages")


class FundingSource(Base):
    """Donation link for a package"""

    __tablename__ = "funding_sources"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    package_name = Column(Text, ForeignKey("packages.name", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(Enum(*FUNDING_PLATFORMS, name="funding_platform"), nullable=False)
    url = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    package = relationship("Package", back_populates="funding_sources")
