"""Request dependencies backed by the objects built at startup."""
from fastapi import Request

from csv_pipeline_api.settings import Settings
from csv_pipeline_core.dispatch import Dispatcher
from csv_pipeline_core.jobs import JobStore, StatusVocabulary


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_vocabulary(request: Request) -> StatusVocabulary:
    return request.app.state.store.vocabulary
