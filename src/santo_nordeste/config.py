from __future__ import annotations
import os
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    recipe_model: str = "gemini-3-flash-preview"
    image_model: str = "gemini-2.5-flash-image"
    speech_model: str = "gemini-2.5-flash-preview-tts"
    voice_name: str = "Kore"
    sample_rate: int = 24000
    request_timeout: Optional[float] = None
    suggested_dishes: list[str] = [
        "Baião de Dois",
        "Acarajé",
        "Moqueca Baiana",
        "Bolo de Rolo",
        "Vatapá",
        "Sarapatel",
        "Tapioca",
        "Carne de Sol com Macaxeira",
    ]
    system_prompt: str = (
        "Você é um Chef renomado especialista em culinária do Nordeste brasileiro. "
        "Suas receitas são autênticas, respeitam as tradições locais e incluem uma "
        "breve história cultural do prato. Além da receita, sugira uma lista variada "
        "de bebidas para harmonizar, incluindo sucos de frutas tropicais (caju, umbu, "
        "graviola, seriguela), refrigerantes regionais (como Guaraná Jesus), diferentes "
        "tipos de cachaças artesanais ou até café coado se for o caso."
    )

    @field_validator("gemini_api_key", mode="after")
    @classmethod
    def require_api_key(cls, v: str) -> str:
        env_val = v or os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY", "")
        if not env_val:
            raise ValueError("GEMINI_API_KEY environment variable is required")
        return env_val
