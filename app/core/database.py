from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base


def build_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # FastAPI runs sync routes in a threadpool
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


Base = declarative_base()
