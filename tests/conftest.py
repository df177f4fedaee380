"""Shared pytest fixtures."""

import pytest

from course_rag.chunking.schemas import ChunkingOptions
from course_rag.embedding.embedder import EmbeddingProvider
from course_rag.embedding.vector_store import VectorStore
from course_rag.retrieval.retriever import DocumentRetriever

SYLLABUS_PARAGRAPHS = [
    "Introduction to Machine Learning is a third year course for computer science students. "
    "The course covers the fundamental theory and practice of learning from data. "
    "Students will study supervised and unsupervised methods, evaluate models, and "
    "develop practical skills through weekly programming assignments in Python.",

    "Learning objectives for this course are organised by module. By the end of the course "
    "each student should be able to explain the key concepts of statistical learning, "
    "implement a learning algorithm from scratch, select an appropriate model for a problem, "
    "and communicate results clearly in a written report.",

    "Module one covers linear regression, gradient descent and the bias variance trade-off. "
    "Module two introduces classification with logistic regression, decision trees and "
    "support vector machines. Module three is about neural network design, deep learning "
    "and the training process, including regularisation and optimisation methods.",

    "Module four is about unsupervised learning. Topics include clustering, dimensionality "
    "reduction and density estimation. Module five covers natural language processing and "
    "computer vision applications, with a case study on pattern recognition in images and "
    "an analysis of model performance on real data sets.",

    "Assessment consists of four programming assignments, a midterm exam and a final project. "
    "Each assignment is worth ten percent of the final grade. The midterm exam is worth "
    "twenty percent and tests understanding of the theory from modules one to three. "
    "The final project is worth forty percent and requires a written report and presentation.",

    "The final project is an important part of the course. Students work in groups of three "
    "to design, implement and evaluate a machine learning system for a problem of their "
    "choice. Projects are assessed on technical quality, clarity of the report, and the "
    "critical analysis of results, limitations and possible improvements.",

    "Academic integrity is essential. All submitted work must be your own, and any use of "
    "external code or data must be acknowledged. Collaboration is encouraged during "
    "tutorials, but assignments are individual. Late submissions lose ten percent per day "
    "unless an extension has been approved by the course coordinator in advance.",

    "Weekly tutorials support the lectures with practical exercises. Tutors will help "
    "students review the week's topic, discuss solutions to practice problems and prepare "
    "for the exam. Attendance is not compulsory but students who engage with the tutorial "
    "material consistently achieve better results in the course assessment.",

    "Recommended reading includes Pattern Recognition and Machine Learning by Bishop and "
    "The Elements of Statistical Learning by Hastie, Tibshirani and Friedman. Lecture "
    "slides, recordings and additional resources for each unit are available on the "
    "course website. Students should read the relevant chapter before each lecture.",

    "Office hours are held every Tuesday and Thursday afternoon. Questions about the course "
    "content, assignments or the project can also be posted on the discussion forum, "
    "where tutors and the lecturer respond within two working days. Feedback on the course "
    "is welcome at any time and helps improve the learning experience for future students.",
]

SYLLABUS_TEXT = "\n\n".join(SYLLABUS_PARAGRAPHS)


@pytest.fixture(autouse=True)
def no_openai_key(monkeypatch):
    """Keep every test offline unless it injects its own client."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def syllabus_text() -> str:
    return SYLLABUS_TEXT


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "vector_store.json"


@pytest.fixture
def store(store_path) -> VectorStore:
    return VectorStore(store_path)


@pytest.fixture
def offline_provider() -> EmbeddingProvider:
    return EmbeddingProvider(remote=None, batch_delay_seconds=0)


@pytest.fixture
def retriever(store, offline_provider) -> DocumentRetriever:
    return DocumentRetriever(
        store=store,
        embedder=offline_provider,
        chunking=ChunkingOptions(min_chunk_size=200, max_chunk_size=800, overlap=100),
    )
