"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from support_oss.api.main import create_app
from support_oss.infrastructure.database.models import Base, FundingSource, Maintainer, Package, PackageMaintainer
from support_oss.infrastructure.database.session import get_db
from support_oss.domain.models import PackageFunding, PackageRecord


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for date-dependent scoring"""
    return NOW


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def sample_packages(db: Session) -> list[Package]:
    """
    Stored packages covering each scoring path:

    - core-js: hugely popular, solo maintainer, no funding -> 34 needs-support
    - webpack: funded through OpenCollective, five maintainers -> 90 thriving
    - react: corporate backed
    - tiny-lib: maintainer-reported needs-support
    """
    solo = Maintainer(id="zloirock", npm_username="zloirock", name="Denis Pushkarev", github_username="zloirock")
    sokra = Maintainer(id="sokra", npm_username="sokra", name="Tobias Koppers", github_username="sokra")
    others = [Maintainer(id=f"webpack-{i}", npm_username=f"webpack-{i}", name=f"Webpack {i}") for i in range(4)]

    core_js = Package(
        name="core-js",
        latest_version="3.37.1",
        last_publish=datetime.now(timezone.utc) - timedelta(days=30),
        weekly_downloads=40_000_000,
        dependent_count=50_000,
        ai_disruption_flag=False,
    )
    core_js.maintainers.append(PackageMaintainer(maintainer=solo, is_primary=True, source="npm"))

    webpack = Package(
        name="webpack",
        latest_version="5.91.0",
        last_publish=datetime.now(timezone.utc) - timedelta(days=10),
        weekly_downloads=30_000_000,
        dependent_count=30_000,
        repository_owner="webpack",
        oc_slug="webpack",
        oc_balance=250_000,
        oc_yearly_income=400_000,
        oc_backers_count=1200,
        oc_goal_progress=64.0,
        oc_top_sponsors=[
            {"name": f"Sponsor {i}", "imageUrl": f"https://images.example/{i}.png", "profileUrl": f"https://opencollective.com/s{i}"}
            for i in range(5)
        ],
        ai_disruption_flag=False,
    )
    webpack.maintainers.append(PackageMaintainer(maintainer=sokra, is_primary=True, source="npm"))
    for maintainer in others:
        webpack.maintainers.append(PackageMaintainer(maintainer=maintainer, is_primary=False, source="npm"))
    webpack.funding_sources.append(FundingSource(platform="opencollective", url="https://opencollective.com/webpack"))

    react = Package(
        name="react",
        latest_version="18.3.1",
        weekly_downloads=25_000_000,
        corporate_backing="Meta",
        ai_disruption_flag=False,
    )

    tiny = Package(
        name="tiny-lib",
        latest_version="0.1.0",
        maintainer_status="needs-support",
        ai_disruption_flag=False,
    )

    packages = [core_js, webpack, react, tiny]
    db.add_all(packages)
    db.commit()
    return packages


@pytest.fixture
def funded_record() -> PackageRecord:
    """Record with OpenCollective funding and a GitHub listing -> 86 thriving"""
    return PackageRecord(
        name="webpack",
        weekly_downloads=30_000_000,
        dependent_count=30_000,
        maintainer_count=5,
        last_publish=NOW - timedelta(days=10),
        latest_version="5.91.0",
        funding=PackageFunding(
            oc_slug="webpack",
            oc_balance=250_000,
            oc_yearly_income=40_000,
            oc_backers_count=1200,
            oc_top_sponsors=[
                {"name": f"Sponsor {i}", "imageUrl": None, "profileUrl": f"https://opencollective.com/s{i}"}
                for i in range(5)
            ],
            gh_has_sponsors_listing=True,
            repository_owner="webpack",
        ),
    )
