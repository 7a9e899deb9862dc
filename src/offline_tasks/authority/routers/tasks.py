from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...schemas import RemoteTaskIn, RemoteTaskOut, TaskListEnvelope
from ..store import TaskAuthorityStore

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)


def _get_store(request: Request) -> TaskAuthorityStore:
    """
    Dependency returning the task table attached to the application.
    """
    return request.app.state.store


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TaskListEnvelope,
    summary="List Tasks",
    description="Return every task held by the authority, most recently updated first.",
    responses={200: {"description": "List retrieved successfully"}},
)
def list_tasks(store: TaskAuthorityStore = Depends(_get_store)) -> TaskListEnvelope:
    """
    List all tasks.
    """
    items = [RemoteTaskOut(**t) for t in store.list()]  # type: ignore[arg-type]
    return TaskListEnvelope(items=items, total=len(items))


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=RemoteTaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"description": "Task not found"},
    },
)
def get_task(task_id: str, store: TaskAuthorityStore = Depends(_get_store)) -> RemoteTaskOut:
    """
    Retrieve a single task by its ID.
    """
    item = store.get(task_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return RemoteTaskOut(**item)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=RemoteTaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task under its client-assigned ID and timestamp.",
    responses={
        201: {"description": "Task created successfully"},
        409: {"description": "A task with this ID already exists"},
    },
)
def create_task(payload: RemoteTaskIn, store: TaskAuthorityStore = Depends(_get_store)) -> RemoteTaskOut:
    """
    Create a new task.
    """
    task = payload.to_task()
    if not store.create(task):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Task already exists")
    return RemoteTaskOut(**task)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=RemoteTaskOut,
    summary="Replace Task",
    description="Replace an existing task with the client's revision.",
    responses={
        200: {"description": "Task updated"},
        400: {"description": "Path and body IDs differ"},
        404: {"description": "Task not found"},
    },
)
def put_task(task_id: str, payload: RemoteTaskIn, store: TaskAuthorityStore = Depends(_get_store)) -> RemoteTaskOut:
    """
    Full replace of a task. The body id must match the path id.
    """
    if payload.id != task_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Task id mismatch")
    task = payload.to_task()
    if not store.replace(task):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return RemoteTaskOut(**task)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a task by ID.",
    responses={
        204: {"description": "Task deleted"},
        404: {"description": "Task not found"},
    },
)
def delete_task(task_id: str, store: TaskAuthorityStore = Depends(_get_store)) -> None:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    if not store.delete(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return None
