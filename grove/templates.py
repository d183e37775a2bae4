"""
Tree Templates

Built-in starting trees for a new workspace. `grove init --template NAME`
picks one; the default branch store (used whenever no saved state can be
loaded) is built from the workspace's configured template.
"""

import logging

from .snapshot import DEFAULT_BRANCH, BranchStore
from .tree import FileNode, FileStatus, FolderNode

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "sample"

# File opened when nothing else is: the sample's TypeScript service
SAMPLE_DEFAULT_FILE = "user-service-ts"

_USER_SERVICE_TS = """\
import { v4 as uuidv4 } from 'uuid';

interface User {
  id: string;
  name: string;
  email: string;
  createdAt: Date;
}

class UserService {
  private users: User[] = [];

  createUser(name: string, email: string): User {
    if (!name || !email) {
      throw new Error('Name and email are required');
    }

    const newUser: User = {
      id: uuidv4(),
      name,
      email,
      createdAt: new Date(),
    };

    this.users.push(newUser);
    return newUser;
  }

  getUserById(id: string): User | undefined {
    return this.users.find(user => user.id === id);
  }

  getUsersSortedByCreationDate(order: 'asc' | 'desc' = 'desc') {
    return [...this.users].sort((a, b) => {
      if (order === 'asc') {
        return a.createdAt.getTime() - b.createdAt.getTime();
      } else {
        return b.createdAt.getTime() - a.createdAt.getTime();
      }
    });
  }
}
"""

_DATA_ANALYZER_PY = """\
import pandas as pd
import numpy as np


class DataAnalyzer:
    def __init__(self, data_source):
        self.data_source = data_source
        self.df = None

    def load_data(self):
        if isinstance(self.data_source, dict):
            self.df = pd.DataFrame(self.data_source)
        else:
            self.df = pd.read_csv(self.data_source)

    def compute_statistics(self):
        if self.df is None:
            raise ValueError("Data not loaded. Call load_data() first.")

        summary = {}
        for col in self.df.columns:
            if np.issubdtype(self.df[col].dtype, np.number):
                summary[col] = {
                    'mean': self.df[col].mean(),
                    'median': self.df[col].median(),
                    'std_dev': self.df[col].std()
                }
        return summary

    def find_anomalies(self, column, threshold=2):
        if self.df is None or column not in self.df.columns:
            return []

        col_data = self.df[column]
        mean = col_data.mean()
        std = col_data.std()

        anomalies = []
        for index, value in col_data.items():
            z_score = (value - mean) / std
            if abs(z_score) > threshold:
                anomalies.append((index, value))
        return anomalies
"""


def sample_tree() -> FolderNode:
    """A small two-language project with everything committed."""
    return FolderNode(
        id="root",
        name="ai-code-assistant",
        children=(
            FolderNode(
                id="src-folder",
                name="src",
                children=(
                    FileNode(
                        id=SAMPLE_DEFAULT_FILE,
                        name="user-service.ts",
                        language="typescript",
                        content=_USER_SERVICE_TS,
                        status=FileStatus.UNMODIFIED,
                    ),
                    FileNode(
                        id="data-analyzer-py",
                        name="data_analyzer.py",
                        language="python",
                        content=_DATA_ANALYZER_PY,
                        status=FileStatus.UNMODIFIED,
                    ),
                ),
            ),
        ),
    )


def empty_tree(name: str = "project") -> FolderNode:
    return FolderNode(id="root", name=name)


TEMPLATES = {
    "sample": sample_tree,
    "empty": empty_tree,
}


def list_templates() -> list[str]:
    return sorted(TEMPLATES)


def build_tree(template: str = DEFAULT_TEMPLATE) -> FolderNode:
    """Build a fresh tree from a named template."""
    try:
        factory = TEMPLATES[template]
    except KeyError:
        raise ValueError(
            f"Unknown template: {template!r} (available: {', '.join(list_templates())})"
        ) from None
    return factory()


def default_store(template: str = DEFAULT_TEMPLATE, branch: str = DEFAULT_BRANCH) -> BranchStore:
    """The single-branch store used when no saved state exists."""
    logger.debug("Building default store from template %s", template)
    return BranchStore.initial(build_tree(template), branch)
