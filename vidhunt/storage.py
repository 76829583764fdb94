"""
Document Storage

The object-store interface the pipeline writes through, with a Google
Drive implementation and an in-memory one for dry runs and tests.
Documents are JSON; containers are folders.
"""

import io
import itertools
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .errors import PersistenceError
from .models import Document

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = 'application/json'
FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'


def dump_json(content: Dict) -> str:
    return json.dumps(content, ensure_ascii=False, indent=2)


class DocumentStore(ABC):
    """Find, create, read and update JSON documents inside containers."""

    @abstractmethod
    def find_document(self, name: str, container_id: str) -> Optional[Document]:
        """Return the first document called `name` in the container, or None."""

    @abstractmethod
    def create_document(self, name: str, container_id: str, content: Dict) -> Document:
        """Create a JSON document."""

    @abstractmethod
    def update_document(self, document_id: str, content: Dict) -> Document:
        """Replace a document's content."""

    @abstractmethod
    def read_content(self, document_id: str) -> str:
        """Return a document's raw text."""

    @abstractmethod
    def list_containers(self) -> List[Document]:
        """List every container visible to the store."""

    @abstractmethod
    def create_container(self, name: str, parent_id: str) -> Document:
        """Create a container inside another one."""

    def read_json(self, document_id: str) -> Dict:
        """
        Read and decode a JSON document.

        Raises:
            PersistenceError: If the content is not valid JSON
        """
        content = self.read_content(document_id)
        try:
            return json.loads(content)
        except ValueError as e:
            raise PersistenceError(f"Document {document_id} is not valid JSON: {e}") from e

    def get_or_create_container(self, name: str, parent_id: str) -> Document:
        container = self.find_document(name, parent_id)
        if container is None:
            container = self.create_container(name, parent_id)
            logger.info(f"Created folder '{name}'")
        return container


# ============================================================================
# GOOGLE DRIVE
# ============================================================================

class DriveDocumentStore(DocumentStore):
    """DocumentStore backed by Google Drive v3."""

    def __init__(self, credentials=None, client=None):
        """
        Initialize the Drive client.

        Args:
            credentials: google.auth credentials with a Drive scope
            client: Pre-built API resource (skips discovery, used by tests)

        Raises:
            ValueError: If neither credentials nor client is given
        """
        if client is None and credentials is None:
            raise ValueError("Drive credentials are required")

        self._drive = client or build('drive', 'v3', credentials=credentials, cache_discovery=False)
        logger.info("Drive storage initialized successfully")

    @staticmethod
    def _to_document(data: Dict) -> Document:
        return Document(id=data['id'], name=data.get('name', ''), mime_type=data.get('mimeType', JSON_MIME_TYPE))

    @staticmethod
    def _media(content: Dict) -> MediaIoBaseUpload:
        data = dump_json(content).encode('utf-8')
        return MediaIoBaseUpload(io.BytesIO(data), mimetype=JSON_MIME_TYPE, resumable=False)

    def find_document(self, name: str, container_id: str) -> Optional[Document]:
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        try:
            response = self._drive.files().list(
                q=f"name='{escaped}' and '{container_id}' in parents and trashed=false",
                fields='files(id, name, mimeType)',
                spaces='drive',
            ).execute()
        except HttpError as e:
            raise PersistenceError(f"Failed to search for '{name}' in Drive: {e}") from e

        files = response.get('files', [])
        return self._to_document(files[0]) if files else None

    def create_document(self, name: str, container_id: str, content: Dict) -> Document:
        metadata = {'name': name, 'mimeType': JSON_MIME_TYPE, 'parents': [container_id]}
        try:
            created = self._drive.files().create(
                body=metadata,
                media_body=self._media(content),
                fields='id, name, mimeType',
            ).execute()
        except HttpError as e:
            raise PersistenceError(f"Failed to create '{name}': {e}") from e
        return self._to_document(created)

    def update_document(self, document_id: str, content: Dict) -> Document:
        try:
            updated = self._drive.files().update(
                fileId=document_id,
                media_body=self._media(content),
                fields='id, name, mimeType',
            ).execute()
        except HttpError as e:
            raise PersistenceError(f"Failed to update document {document_id}: {e}") from e
        return self._to_document(updated)

    def read_content(self, document_id: str) -> str:
        try:
            data = self._drive.files().get_media(fileId=document_id).execute()
        except HttpError as e:
            raise PersistenceError(f"Failed to get content of {document_id}: {e}") from e
        return data.decode('utf-8') if isinstance(data, bytes) else data

    def list_containers(self) -> List[Document]:
        folders: List[Document] = []
        page_token = None
        try:
            while True:
                response = self._drive.files().list(
                    q=f"mimeType='{FOLDER_MIME_TYPE}' and trashed=false",
                    fields='nextPageToken, files(id, name, mimeType)',
                    orderBy='name',
                    pageSize=100,
                    pageToken=page_token,
                ).execute()
                folders.extend(self._to_document(f) for f in response.get('files', []))
                page_token = response.get('nextPageToken')
                if not page_token:
                    break
        except HttpError as e:
            raise PersistenceError(f"Failed to list folders: {e}") from e
        return folders

    def create_container(self, name: str, parent_id: str) -> Document:
        try:
            created = self._drive.files().create(
                body={'name': name, 'mimeType': FOLDER_MIME_TYPE, 'parents': [parent_id]},
                fields='id, name, mimeType',
            ).execute()
        except HttpError as e:
            raise PersistenceError(f"Failed to create folder '{name}': {e}") from e
        return self._to_document(created)


# ============================================================================
# IN MEMORY
# ============================================================================

class MemoryDocumentStore(DocumentStore):
    """Process-local DocumentStore; `root` always exists as a container."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._items: Dict[str, Dict] = {
            'root': {'name': 'root', 'parent': None, 'mime_type': FOLDER_MIME_TYPE, 'content': None},
        }

    def _document(self, document_id: str) -> Document:
        item = self._items[document_id]
        return Document(id=document_id, name=item['name'], mime_type=item['mime_type'])

    def _require(self, document_id: str) -> Dict:
        if document_id not in self._items:
            raise PersistenceError(f"Document not found: {document_id}")
        return self._items[document_id]

    def find_document(self, name: str, container_id: str) -> Optional[Document]:
        for document_id, item in self._items.items():
            if item['name'] == name and item['parent'] == container_id:
                return self._document(document_id)
        return None

    def create_document(self, name: str, container_id: str, content: Dict) -> Document:
        self._require(container_id)
        document_id = f"doc-{next(self._ids)}"
        self._items[document_id] = {
            'name': name,
            'parent': container_id,
            'mime_type': JSON_MIME_TYPE,
            'content': dump_json(content),
        }
        return self._document(document_id)

    def update_document(self, document_id: str, content: Dict) -> Document:
        self._require(document_id)['content'] = dump_json(content)
        return self._document(document_id)

    def read_content(self, document_id: str) -> str:
        content = self._require(document_id)['content']
        if content is None:
            raise PersistenceError(f"{document_id} is a folder")
        return content

    def list_containers(self) -> List[Document]:
        folders = [
            self._document(i) for i, item in self._items.items()
            if item['mime_type'] == FOLDER_MIME_TYPE
        ]
        return sorted(folders, key=lambda d: d.name)

    def create_container(self, name: str, parent_id: str) -> Document:
        self._require(parent_id)
        folder_id = f"folder-{next(self._ids)}"
        self._items[folder_id] = {'name': name, 'parent': parent_id, 'mime_type': FOLDER_MIME_TYPE, 'content': None}
        return self._document(folder_id)

