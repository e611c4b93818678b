"""
Knowledge Scout Backend - Services Layer
========================================

What:  Business collaborators reached through the request pipeline.

Service Inventory:
    - AuthService:      password hashing, JWT issue/verify, demo account
    - FileService:      upload validation, storage and cleanup
    - extraction:       text extraction from stored documents
    - DocumentService:  document records and their processing state
    - ChatService:      chat sessions and LLM-backed replies
    - AIService:        summaries and question generation
    - LLMService:       provider interface (GeminiService implements it)

Instances are built per app in main.create_app() and stored on app.state;
routes reach them through the dependencies in scout.dependencies.
"""
