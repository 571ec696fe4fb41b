from fastapi import APIRouter, Depends, HTTPException

from ..errors import StorageError
from ..preferences import Appearance, PreferencesStore, Prompt
from .deps import get_preferences

router = APIRouter(prefix="/api", tags=["preferences"])


@router.get("/models")
async def get_models(prefs: PreferencesStore = Depends(get_preferences)):
    try:
        return prefs.get_models()
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/models")
async def save_models(
    models: dict[str, str], prefs: PreferencesStore = Depends(get_preferences)
):
    try:
        prefs.save_models(models)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


# Model ids contain slashes ("openai/gpt-4-turbo-preview").
@router.delete("/models/{model_id:path}")
async def delete_model(model_id: str, prefs: PreferencesStore = Depends(get_preferences)):
    try:
        prefs.delete_model(model_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


@router.get("/appearance")
async def get_appearance(prefs: PreferencesStore = Depends(get_preferences)):
    try:
        return prefs.get_appearance().model_dump(by_alias=True)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/appearance")
async def save_appearance(
    appearance: Appearance, prefs: PreferencesStore = Depends(get_preferences)
):
    try:
        prefs.save_appearance(appearance)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


@router.get("/prompts")
async def get_prompts(prefs: PreferencesStore = Depends(get_preferences)):
    try:
        return [p.model_dump() for p in prefs.get_prompts()]
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/prompts")
async def save_prompts(
    prompts: list[Prompt], prefs: PreferencesStore = Depends(get_preferences)
):
    try:
        prefs.save_prompts(prompts)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


@router.delete("/prompts/{prompt_id}")
async def delete_prompt(prompt_id: str, prefs: PreferencesStore = Depends(get_preferences)):
    try:
        deleted = prefs.delete_prompt(prompt_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return {"success": True}
