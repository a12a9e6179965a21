"""Ядро RAG по JSON-документам.

Содержит:
- config: dataclass-конфиги для эмбеддингов, LLM, нарезки, батчей и поиска
- models: pydantic-модели чанков, результатов эмбеддинга и событий стриминга
- errors: исключения ядра с этапом и HTTP-статусом
- chunking: нарезка JSON-документа на чанки по предложениям с перекрытием
- embeddings: клиент эмбеддингов с разбиением длинных текстов и усреднением
- batch: пакетное построение эмбеддингов с ограниченным параллелизмом и прогрессом
- vectorstore: хранилище чанков в памяти и поиск по косинусному сходству
- llm: адаптер LlamaIndex CustomLLM для OpenAI-совместимого Chat API
- indexer: последовательная индексация документа в хранилище
- engine: RAG-движок (индексация + ответ на вопрос)
"""
