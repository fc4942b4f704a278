import logging
from dataclasses import dataclass, field
from typing import Optional

from redis import Redis

from core.collaborators import SubjectServiceClient, OpportunityServiceClient
from core.config_loader import AppConfig
from core.enumerator import CandidatePairEnumerator
from core.scorer import ScoringService
from database.database import Database
from database.uow import match_uow
from events.publisher import MatchEventPublisher
from events.queue import MatchingJobQueue
from pipeline.runner import MatchingPipeline

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Built once at process startup and closed at shutdown. It owns the
    database engine, the Redis connection and the collaborator HTTP
    sessions. DB access inside processing loops goes through match_uow().
    """
    config: AppConfig
    database: Database
    redis: Redis
    subjects: SubjectServiceClient
    opportunities: OpportunityServiceClient
    scoring: ScoringService
    pipeline: MatchingPipeline
    publisher: Optional[MatchEventPublisher] = None
    _job_queue: Optional[MatchingJobQueue] = field(default=None, repr=False)

    @classmethod
    def build(cls, config: AppConfig) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration

        Returns:
            Fully wired AppContext instance
        """
        database = Database(config.database)
        redis_conn = Redis.from_url(config.redis.url)

        subjects = SubjectServiceClient.from_config(config.collaborators)
        opportunities = OpportunityServiceClient.from_config(config.collaborators)
        scoring = ScoringService(config.scoring)

        publisher = None
        if config.events.enabled:
            publisher = MatchEventPublisher(redis_conn, config.events)

        enumerator = cls._build_enumerator(config, database, subjects, opportunities)

        pipeline = MatchingPipeline(
            database=database,
            enumerator=enumerator,
            scoring=scoring,
            publisher=publisher,
            pair_concurrency=config.pipeline.pair_concurrency
        )

        return cls(
            config=config,
            database=database,
            redis=redis_conn,
            subjects=subjects,
            opportunities=opportunities,
            scoring=scoring,
            pipeline=pipeline,
            publisher=publisher
        )

    @staticmethod
    def _build_enumerator(
        config: AppConfig,
        database: Database,
        subjects: SubjectServiceClient,
        opportunities: OpportunityServiceClient
    ) -> CandidatePairEnumerator:
        """Wire the enumerator's existing-pair lookups to short read-only units of work."""
        def existing_opportunity_ids(subject_id, candidate_ids):
            with match_uow(database) as repo:
                return repo.existing_opportunity_ids(subject_id, candidate_ids)

        def existing_subject_ids(opportunity_id, candidate_ids):
            with match_uow(database) as repo:
                return repo.existing_subject_ids(opportunity_id, candidate_ids)

        return CandidatePairEnumerator(
            subjects=subjects,
            opportunities=opportunities,
            existing_opportunity_ids=existing_opportunity_ids,
            existing_subject_ids=existing_subject_ids,
            config=config.enumeration
        )

    @property
    def job_queue(self) -> MatchingJobQueue:
        if self._job_queue is None:
            self._job_queue = MatchingJobQueue(self.config.queue, self.redis, self.pipeline)
        return self._job_queue

    def close(self) -> None:
        self.subjects.close()
        self.opportunities.close()
        try:
            self.redis.close()
        except Exception as e:
            logger.warning(f"Error closing Redis connection: {e}")
        self.database.dispose()
        logger.info("Application context closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
