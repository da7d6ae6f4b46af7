"""
WebSocket manager for real-time guest list updates
"""

import json
import logging
from typing import Dict, List
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends
from sqlalchemy.orm import Session

from app.core.access import Caller, STAFF_ROLES, can_access_venue
from app.core.db import get_db
from app.core.errors import LedgerError
from app.services.identity import get_identity_provider
from app.services.repositories import VenueRepo
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

class WebSocketManager:
    """Manages WebSocket connections grouped into per-venue rooms"""

    def __init__(self):
        # venue_id -> list of websockets
        self.active_connections: Dict[int, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, venue_id: int):
        """Accept WebSocket connection and add to venue room"""
        await websocket.accept()

        if venue_id not in self.active_connections:
            self.active_connections[venue_id] = []

        self.active_connections[venue_id].append(websocket)
        logger.info(f"WebSocket connected to venue {venue_id}. Total connections: {len(self.active_connections[venue_id])}")

    def disconnect(self, websocket: WebSocket, venue_id: int):
        """Remove WebSocket connection from venue room"""
        connections = self.active_connections.get(venue_id)
        if not connections or websocket not in connections:
            return

        connections.remove(websocket)
        logger.info(f"WebSocket disconnected from venue {venue_id}. Remaining connections: {len(connections)}")

        # Clean up empty rooms
        if not connections:
            del self.active_connections[venue_id]

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message))
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.error(f"Error sending personal message: {e}")

    async def broadcast_to_venue(self, venue_id: int, message: dict):
        """Broadcast message to all WebSockets watching a venue"""
        if venue_id not in self.active_connections:
            logger.debug(f"No active connections for venue {venue_id}")
            return

        # Copy so disconnects during the loop are safe
        connections = self.active_connections[venue_id].copy()

        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(json.dumps(message))
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.error(f"Error broadcasting to websocket: {e}")
                disconnected.append(websocket)

        for websocket in disconnected:
            self.disconnect(websocket, venue_id)

    def get_connection_count(self, venue_id: int) -> int:
        """Get number of active connections for a venue"""
        return len(self.active_connections.get(venue_id, []))

    def get_all_connection_counts(self) -> Dict[int, int]:
        """Get connection counts for all venues"""
        return {
            venue_id: len(connections)
            for venue_id, connections in self.active_connections.items()
        }

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

# Router for WebSocket endpoints
router = APIRouter()

@router.websocket("/venues/{venue_id}")
async def websocket_endpoint(
    websocket: WebSocket,
    venue_id: int,
    token: str = "",
    db: Session = Depends(get_db)
):
    """WebSocket endpoint for real-time guest updates of one venue"""

    # Browsers cannot set headers on websockets, so the session comes as ?token=
    try:
        identity = get_identity_provider().verify_session(token)
        caller = Caller.from_user(UserService.resolve_session(db, identity))
    except LedgerError as e:
        await websocket.close(code=4001, reason=e.message)
        return

    if caller.role not in STAFF_ROLES or not can_access_venue(caller, venue_id):
        await websocket.close(code=4003, reason="You do not have access to this venue")
        return

    venue = VenueRepo.get(db, venue_id)
    if not venue:
        await websocket.close(code=4004, reason="Venue not found")
        return

    await websocket_manager.connect(websocket, venue_id)

    try:
        welcome_message = {
            "type": "connection",
            "message": f"Connected to venue: {venue.name}",
            "venue_id": venue_id,
            "connection_count": websocket_manager.get_connection_count(venue_id)
        }
        await websocket_manager.send_personal_message(welcome_message, websocket)

        # Keep connection alive and answer heartbeats
        while True:
            data = await websocket.receive_text()

            try:
                client_message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received from WebSocket: {data}")
                continue

            if isinstance(client_message, dict) and client_message.get("type") == "ping":
                pong_message = {
                    "type": "pong",
                    "timestamp": client_message.get("timestamp")
                }
                await websocket_manager.send_personal_message(pong_message, websocket)

    except WebSocketDisconnect:
        pass
    finally:
        websocket_manager.disconnect(websocket, venue_id)

@router.get("/stats")
async def websocket_stats():
    """Get WebSocket connection statistics (for debugging)"""
    counts = websocket_manager.get_all_connection_counts()
    return {
        "total_venues_with_connections": len(counts),
        "connection_counts": counts,
        "total_connections": sum(counts.values())
    }
