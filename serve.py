#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Тонкий лаунчер для запуска HTTP-сервера JSON RAG.

Ядро лежит в пакете `json_rag`, FastAPI-приложение - в `app/main.py`
(там же читается .env).

Запуск сервера:
  python serve.py
  # или напрямую
  uvicorn app.main:app --host 0.0.0.0 --port 8000

Хост и порт можно переопределить переменными окружения HOST и PORT.
"""

import os


def main() -> None:
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    main()
