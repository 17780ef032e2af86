from __future__ import annotations

import base64
import json

import httpx

from app.core.config import Settings, get_settings


def _first_candidate_text(body: dict) -> str:
    """응답 본문에서 첫 후보의 텍스트 추출

    Args:
        body: generateContent 응답 본문

    Returns:
        후보 텍스트

    Raises:
        ValueError: 후보 또는 텍스트가 없을 때
    """
    candidates = body.get("candidates") or []
    if not candidates:
        raise ValueError("응답 후보 없음")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(str(part.get("text", "")) for part in parts).strip()
    if not text:
        raise ValueError("응답 텍스트 없음")
    return text


def generate_structured(
    contents: list[dict],
    system_instruction: str,
    schema: dict,
    settings: Settings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> dict:
    """Gemini generateContent API로 JSON 구조 응답을 요청

    Args:
        contents: 요청 parts 목록
        system_instruction: 시스템 지시문
        schema: 응답 스키마
        settings: 애플리케이션 설정(선택)
        transport: httpx 전송 계층(테스트용, 선택)

    Returns:
        파싱된 JSON 객체

    Raises:
        httpx.HTTPError: 전송 또는 HTTP 상태 오류 시
        ValueError: 응답이 JSON 객체가 아닐 때
    """
    settings = settings or get_settings()
    url = f"{settings.gemini_base_url.rstrip('/')}/models/{settings.gemini_model}:generateContent"
    payload = {
        "contents": [{"role": "user", "parts": contents}],
        "systemInstruction": {"parts": [{"text": system_instruction}]},
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": schema,
        },
    }
    headers = {"x-goog-api-key": settings.gemini_api_key}
    with httpx.Client(timeout=settings.gemini_timeout_seconds, transport=transport) as client:
        response = client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        body = response.json()
    parsed = json.loads(_first_candidate_text(body))
    if not isinstance(parsed, dict):
        raise ValueError("응답이 JSON 객체가 아님")
    return parsed


def text_part(text: str) -> dict:
    """텍스트 part 생성"""
    return {"text": text}


def inline_part(content: bytes, mime_type: str) -> dict:
    """인라인 파일 part 생성

    Args:
        content: 파일 바이트
        mime_type: MIME 타입

    Returns:
        base64 인코딩된 inlineData part
    """
    return {
        "inlineData": {
            "mimeType": mime_type,
            "data": base64.b64encode(content).decode("ascii"),
        }
    }
