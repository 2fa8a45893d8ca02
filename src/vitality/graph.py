"""
Neo4j connection for the exercise catalog.

Internal Codename: ATLAS
The catalog can live in a graph (exercises, muscles, alternatives) and be
pulled into memory once at startup.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from neo4j import Driver, GraphDatabase

from .config import Settings

logger = logging.getLogger(__name__)


class ExerciseGraph:
    """Thin wrapper around a Neo4j driver for catalog reads and seeding."""

    def __init__(
        self,
        uri: str,
        user: str,
        password: str,
        database: str = "neo4j"
    ):
        """
        Initialize connection to Neo4j.

        Args:
            uri: Bolt URI
            user: Neo4j user
            password: Neo4j password
            database: Database name
        """
        if not password:
            raise ValueError("NEO4J_PASSWORD environment variable must be set")

        self.uri = uri
        self.database = database
        self.driver: Driver = GraphDatabase.driver(uri, auth=(user, password))

    @classmethod
    def from_settings(cls, settings: Settings) -> 'ExerciseGraph':
        if not settings.neo4j_uri:
            raise ValueError("NEO4J_URI is not configured")
        return cls(
            settings.neo4j_uri,
            settings.neo4j_user,
            settings.neo4j_password,
            settings.neo4j_database,
        )

    def close(self):
        """Close the database connection."""
        if self.driver:
            self.driver.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def verify_connectivity(self) -> bool:
        """
        Verify that we can connect to Neo4j.

        Returns:
            True if connection successful
        """
        try:
            self.driver.verify_connectivity()
            return True
        except Exception as e:
            logger.error(f"Connection to {self.uri} failed: {e}")
            return False

    def execute_query(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a Cypher query and return results.

        Args:
            query: Cypher query string
            parameters: Optional query parameters

        Returns:
            List of result records as dictionaries
        """
        with self.driver.session(database=self.database) as session:
            result = session.run(query, parameters or {})
            return [dict(record) for record in result]

    def execute_write(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> Any:
        with self.driver.session(database=self.database) as session:
            result = session.run(query, parameters or {})
            return result.consume()

    def create_constraints(self):
        """Uniqueness constraint and name index for Exercise nodes."""
        self.execute_write(
            "CREATE CONSTRAINT exercise_id IF NOT EXISTS FOR (e:Exercise) REQUIRE e.id IS UNIQUE"
        )
        self.execute_write(
            "CREATE INDEX exercise_name IF NOT EXISTS FOR (e:Exercise) ON (e.name)"
        )

    def fetch_exercises(self) -> List[Dict[str, Any]]:
        """
        Read every Exercise node with its alternatives.

        Returns:
            List of dicts shaped like ExerciseDefinition.to_dict()
        """
        query = """
        MATCH (e:Exercise)
        OPTIONAL MATCH (e)-[:ALTERNATIVE_TO]->(alt:Exercise)
        WITH e, collect(alt.id) as alternatives
        RETURN
            e.id as id,
            e.name as name,
            e.category as category,
            e.movement_pattern as movement_pattern,
            e.primary_muscle_group as primary_muscle_group,
            e.secondary_muscle_groups as secondary_muscle_groups,
            e.muscle_region as muscle_region,
            e.difficulty as difficulty,
            e.equipment as equipment,
            alternatives
        ORDER BY e.id
        """
        return self.execute_query(query)

    def upsert_exercises(self, exercises: Iterable[Dict[str, Any]]) -> int:
        """
        Seed or refresh Exercise nodes and ALTERNATIVE_TO relationships.

        Args:
            exercises: Dicts shaped like ExerciseDefinition.to_dict()

        Returns:
            Number of exercises written
        """
        rows = list(exercises)
        self.execute_write(
            """
            UNWIND $rows as row
            MERGE (e:Exercise {id: row.id})
            SET e.name = row.name,
                e.category = row.category,
                e.movement_pattern = row.movement_pattern,
                e.primary_muscle_group = row.primary_muscle_group,
                e.secondary_muscle_groups = row.secondary_muscle_groups,
                e.muscle_region = row.muscle_region,
                e.difficulty = row.difficulty,
                e.equipment = row.equipment
            """,
            {"rows": rows}
        )
        self.execute_write(
            """
            UNWIND $rows as row
            MATCH (e:Exercise {id: row.id})
            UNWIND row.alternatives as alt_id
            MATCH (alt:Exercise {id: alt_id})
            MERGE (e)-[:ALTERNATIVE_TO]->(alt)
            """,
            {"rows": rows}
        )
        logger.info(f"Upserted {len(rows)} exercises")
        return len(rows)
