#!/usr/bin/env python3
"""Async MongoDB executor for compiled pipelines (Motor)"""

from motor.motor_asyncio import AsyncIOMotorClient
from typing import Dict, Any, List, Mapping, Optional, Union
import asyncio
import logging

from .assembler import (
    AssociationLink,
    CollectionRef,
    build_association_aggregation,
    build_list_aggregation,
    collection_handle,
)
from .constants import DATABASE_NAME, MONGODB_CONNECTION_STRING
from .query import unpack_facet_result
from .registry import SchemaRegistry

# Configure logging
logger = logging.getLogger(__name__)


class DirectMongoClient:
    """Runs aggregation pipelines through a pooled Motor client"""

    def __init__(self, connection_string: str = MONGODB_CONNECTION_STRING, database: str = DATABASE_NAME):
        self.connection_string = connection_string
        self.database = database
        self.client: AsyncIOMotorClient | None = None
        self.connected = False
        self._connect_lock = asyncio.Lock()

    async def connect(self):
        """Initialize the MongoDB connection pool"""
        try:
            async with self._connect_lock:
                if self.connected and self.client:
                    return

                self.client = AsyncIOMotorClient(
                    self.connection_string,
                    maxPoolSize=50,
                    minPoolSize=10,
                    maxIdleTimeMS=45000,
                    serverSelectionTimeoutMS=5000,
                    connectTimeoutMS=10000,
                    socketTimeoutMS=20000,
                )

                # Test connection
                await self.client.admin.command('ping')

                self.connected = True

        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self.client:
            self.client.close()
        self.connected = False
        self.client = None

    async def aggregate(self, collection: str, pipeline: List[Dict[str, Any]], database: Optional[str] = None) -> List[Dict[str, Any]]:
        """Execute an aggregation pipeline

        Args:
            collection: Physical collection name
            pipeline: MongoDB aggregation pipeline
            database: Database name, defaults to the client's database

        Returns:
            List of result documents
        """
        if not self.client:
            raise RuntimeError("MongoDB client not initialized. Call connect() first.")

        coll = self.client[database or self.database][collection]
        cursor = coll.aggregate(pipeline)
        return await cursor.to_list(length=None)

    async def list_documents(
        self,
        registry: SchemaRegistry,
        collection: CollectionRef,
        query: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """Compile and run a direct list query.

        Returns {"content": [...], "total": N}.
        """
        handle = collection_handle(registry, collection)
        pipeline = build_list_aggregation(query, registry, handle)
        content, total = unpack_facet_result(await self.aggregate(handle.physical_name, pipeline))
        return {"content": content, "total": total}

    async def list_associated(
        self,
        registry: SchemaRegistry,
        link: Union[AssociationLink, Dict[str, Any]],
        association_name: str,
        owner: CollectionRef,
        owner_id: str,
        child: CollectionRef,
        query: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """Compile and run an association query on the owner's collection.

        Returns {"content": [...], "total": N}; content holds at most one row
        (the owner) carrying the linked rows under `association_name`.
        """
        handle = collection_handle(registry, owner)
        pipeline = build_association_aggregation(query, registry, link, association_name, handle, owner_id, child)
        content, total = unpack_facet_result(await self.aggregate(handle.physical_name, pipeline))
        return {"content": content, "total": total}
