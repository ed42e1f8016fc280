from .spot_repository import SpotRepository, SqlAlchemySpotRepository, ValidationUpdate

__all__ = ["SpotRepository", "SqlAlchemySpotRepository", "ValidationUpdate"]
