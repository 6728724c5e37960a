"""Shared fixtures for index tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from tree_sitter import Tree

from codegraph.index._internal.grammars import GrammarRegistry
from codegraph.index.cache import CacheService


@pytest.fixture
def cache_service() -> CacheService:
    return CacheService()


@pytest.fixture
def grammars(cache_service: CacheService) -> GrammarRegistry:
    """Grammar registry with a private cache."""
    return GrammarRegistry(cache_service)


@pytest.fixture
def parse(grammars: GrammarRegistry) -> Callable[[str, str], Tree]:
    """Parse ``(language, source)`` into a syntax tree."""

    def _parse(language: str, source: str) -> Tree:
        return grammars.parse(language, source)

    return _parse


@pytest.fixture
def sample_python_content() -> str:
    """Sample Python content for parsing tests."""
    return '''"""Sample module."""

import os
from typing import Protocol


def hello(name: str) -> str:
    """Say hello."""
    return f"Hello, {name}!"


class Greeter:
    """A greeter class."""

    def __init__(self, prefix: str = "Hello"):
        self.prefix = prefix

    @staticmethod
    def greet(name: str) -> str:
        """Greet someone."""
        return hello(name)


class Speaker(Protocol):
    def speak(self) -> str: ...


async def fetch():
    return os.getcwd()


CONSTANT = 42
NAMES = ["a", "b"]
'''


@pytest.fixture
def sample_javascript_content() -> str:
    """Sample JavaScript content for parsing tests."""
    return """// Sample module
import { readFile } from './io';
const path = require('path');

function hello(name) {
    return `Hello, ${name}!`;
}

const shout = (text) => text.toUpperCase();

class Greeter extends Base {
    constructor(prefix = "Hello") {
        super();
        this.prefix = prefix;
    }

    greet(name) {
        return hello(name);
    }
}

const CONSTANT = 42;

export { hello, Greeter, CONSTANT };
"""


@pytest.fixture
def sample_typescript_content() -> str:
    """Sample TypeScript content for parsing tests."""
    return """interface Shape {
    area(): number;
}

interface Solid extends Shape {
    volume(): number;
}

enum Color {
    Red,
    Green,
}

type Point = { x: number; y: number };

export class Square implements Shape {
    constructor(private side: number) {}

    area(): number {
        return this.side * this.side;
    }
}

export const unit: number = 1;
"""
