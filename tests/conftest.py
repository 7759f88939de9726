import os

# Cheap hashes for the test run; must be set before cropmgmt.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cropmgmt.auth.security import get_password_hash
from cropmgmt.db.init import ensure_default_roles
from cropmgmt.db.session import Base, get_db
from cropmgmt.main import app
from cropmgmt.models.enums import SeasonStatus, UserStatus
from cropmgmt.models.farm import Farm, Plot, Season
from cropmgmt.models.user import Role, User

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    ensure_default_roles(session)
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(
        username="farmer",
        email=None,
        password=DEFAULT_PASSWORD,
        roles=("FARMER",),
        status=UserStatus.ACTIVE,
        **fields,
    ):
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=get_password_hash(password),
            status=status,
            **fields,
        )
        for code in roles:
            role = db.get(Role, code)
            if role is None:
                role = Role(code=code, name=code.title())
                db.add(role)
            user.roles.append(role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_farm(db):
    def _make_farm(owner, farm_name="Green Acres", active=True, **fields):
        farm = Farm(owner_id=owner.id, farm_name=farm_name, active=active, **fields)
        db.add(farm)
        db.commit()
        db.refresh(farm)
        return farm

    return _make_farm


@pytest.fixture
def make_plot(db):
    def _make_plot(farm, plot_name="North field", area=Decimal("2.00")):
        plot = Plot(farm_id=farm.id, plot_name=plot_name, area=area)
        db.add(plot)
        db.commit()
        db.refresh(plot)
        return plot

    return _make_plot


@pytest.fixture
def make_season(db):
    def _make_season(
        plot,
        season_name="Spring rice",
        status=SeasonStatus.ACTIVE,
        start_date=None,
        end_date=None,
        **fields,
    ):
        start_date = start_date or date.today() - timedelta(days=30)
        if end_date is None:
            end_date = start_date + timedelta(days=120)
        season = Season(
            plot_id=plot.id,
            season_name=season_name,
            status=status,
            start_date=start_date,
            end_date=end_date,
            **fields,
        )
        db.add(season)
        db.commit()
        db.refresh(season)
        return season

    return _make_season


@pytest.fixture
def farmer(make_user):
    return make_user("farmer", full_name="Nguyen Van Farmer", phone="0901234567", province_id=1, ward_id=10)


@pytest.fixture
def other_farmer(make_user):
    return make_user("neighbour")


@pytest.fixture
def farm_setup(farmer, make_farm, make_plot, make_season):
    farm = make_farm(farmer)
    plot = make_plot(farm)
    season = make_season(plot)
    return farm, plot, season
