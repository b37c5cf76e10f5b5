"""
Aggregation pipelines over the books collection.

Pipeline builders are pure functions returning the stage list; shaping
functions turn raw aggregation output into response data. Nothing is cached:
each view is recomputed on every request.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_SLUG = "uncategorized"
TOP_RATED_OVERVIEW_SIZE = 5
TOP_RATED_PER_CATEGORY = 10


def _lookup_one(collection: str, local_field: str, as_field: str) -> List[Dict[str, Any]]:
    """$lookup by _id followed by an unwind that keeps unmatched documents."""
    return [
        {
            "$lookup": {
                "from": collection,
                "localField": local_field,
                "foreignField": "_id",
                "as": as_field,
            }
        },
        {"$unwind": {"path": f"${as_field}", "preserveNullAndEmptyArrays": True}},
    ]


def overview_pipeline(authors_collection: str = "authors", categories_collection: str = "categories") -> List[Dict[str, Any]]:
    """
    Single $facet aggregation computing every figure of the statistics overview.
    """
    return [
        {
            "$facet": {
                "totals": [
                    {
                        "$group": {
                            "_id": None,
                            "totalBooks": {"$sum": 1},
                            "inStockBooks": {"$sum": {"$cond": [{"$eq": ["$inStock", True]}, 1, 0]}},
                            "averageRating": {"$avg": "$rating"},
                        }
                    }
                ],
                "byGenre": [
                    {"$group": {"_id": "$genre", "count": {"$sum": 1}}},
                    {"$sort": {"count": -1, "_id": 1}},
                    {"$project": {"_id": 0, "genre": "$_id", "count": 1}},
                ],
                "byCategory": [
                    {"$group": {"_id": "$category", "count": {"$sum": 1}}},
                    *_lookup_one(categories_collection, "_id", "categoryInfo"),
                    {
                        "$project": {
                            "_id": 0,
                            "categoryId": "$_id",
                            "name": {"$ifNull": ["$categoryInfo.name", UNCATEGORIZED_NAME]},
                            "count": 1,
                        }
                    },
                    {"$sort": {"count": -1, "name": 1}},
                ],
                "topRated": [
                    {"$sort": {"rating": -1}},
                    {"$limit": TOP_RATED_OVERVIEW_SIZE},
                    *_lookup_one(authors_collection, "author", "authorInfo"),
                    {
                        "$project": {
                            "title": 1,
                            "rating": 1,
                            "genre": 1,
                            "author": {"_id": "$authorInfo._id", "name": "$authorInfo.name"},
                        }
                    },
                ],
            }
        }
    ]


def shape_overview(result: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Flatten the $facet output; an empty collection yields zero counts.
    """
    facets = result[0] if result else {}
    totals = (facets.get("totals") or [{}])[0]

    total_books = totals.get("totalBooks", 0)
    in_stock = totals.get("inStockBooks", 0)
    average = totals.get("averageRating")

    return {
        "totalBooks": total_books,
        "inStockBooks": in_stock,
        "outOfStockBooks": total_books - in_stock,
        "averageRating": round(average, 2) if average is not None else 0,
        "genres": facets.get("byGenre", []),
        "categories": facets.get("byCategory", []),
        "topRatedBooks": facets.get("topRated", []),
    }


def top_rated_by_category_pipeline(
    authors_collection: str = "authors",
    categories_collection: str = "categories",
    per_category: int = TOP_RATED_PER_CATEGORY,
) -> List[Dict[str, Any]]:
    """
    Rated books grouped by category, best first within each group.

    Books without a category land in a synthetic "Uncategorized" group.
    Members are ordered by rating desc then title asc before truncation, and
    groups are ordered by category name.
    """
    return [
        {"$match": {"rating": {"$gt": 0}}},
        *_lookup_one(authors_collection, "author", "authorInfo"),
        {
            "$group": {
                "_id": {"$ifNull": ["$category", None]},
                "books": {
                    "$push": {
                        "_id": "$_id",
                        "title": "$title",
                        "rating": "$rating",
                        "genre": "$genre",
                        "isbn": "$isbn",
                        "author": {
                            "_id": "$authorInfo._id",
                            "name": "$authorInfo.name",
                            "nationality": "$authorInfo.nationality",
                        },
                    }
                },
            }
        },
        {
            "$project": {
                "books": {
                    "$slice": [
                        {"$sortArray": {"input": "$books", "sortBy": {"rating": -1, "title": 1}}},
                        per_category,
                    ]
                }
            }
        },
        *_lookup_one(categories_collection, "_id", "categoryInfo"),
        {
            "$project": {
                "_id": 0,
                "category": {
                    "_id": "$_id",
                    "name": {"$ifNull": ["$categoryInfo.name", UNCATEGORIZED_NAME]},
                    "slug": {"$ifNull": ["$categoryInfo.slug", UNCATEGORIZED_SLUG]},
                },
                "books": 1,
                "bookCount": {"$size": "$books"},
            }
        },
        {"$sort": {"category.name": 1}},
    ]


def top_authors_by_book_count_pipeline(limit: int = 10, authors_collection: str = "authors") -> List[Dict[str, Any]]:
    """Authors with the most books, with average rating and total page count."""
    return [
        {
            "$group": {
                "_id": "$author",
                "bookCount": {"$sum": 1},
                "averageRating": {"$avg": "$rating"},
                "totalPages": {"$sum": "$pages"},
            }
        },
        {"$sort": {"bookCount": -1}},
        {"$limit": limit},
        {
            "$lookup": {
                "from": authors_collection,
                "localField": "_id",
                "foreignField": "_id",
                "as": "authorInfo",
            }
        },
        {"$unwind": "$authorInfo"},
        {
            "$project": {
                "_id": "$authorInfo._id",
                "name": "$authorInfo.name",
                "nationality": "$authorInfo.nationality",
                "email": "$authorInfo.email",
                "bookCount": 1,
                "averageRating": {"$round": ["$averageRating", 2]},
                "totalPages": 1,
            }
        },
    ]


def top_authors_by_rating_pipeline(
    limit: int = 10,
    min_books: int = 1,
    authors_collection: str = "authors",
) -> List[Dict[str, Any]]:
    """
    Authors ranked by the average rating of their rated books.

    Unrated books (rating 0) are excluded before grouping, and authors with
    fewer than ``min_books`` rated books are dropped.
    """
    return [
        {"$match": {"rating": {"$gt": 0}}},
        {
            "$group": {
                "_id": "$author",
                "bookCount": {"$sum": 1},
                "averageRating": {"$avg": "$rating"},
                "highestRating": {"$max": "$rating"},
            }
        },
        {"$match": {"bookCount": {"$gte": min_books}}},
        {"$sort": {"averageRating": -1, "bookCount": -1}},
        {"$limit": limit},
        {
            "$lookup": {
                "from": authors_collection,
                "localField": "_id",
                "foreignField": "_id",
                "as": "authorInfo",
            }
        },
        {"$unwind": "$authorInfo"},
        {
            "$project": {
                "_id": "$authorInfo._id",
                "name": "$authorInfo.name",
                "nationality": "$authorInfo.nationality",
                "bookCount": 1,
                "averageRating": {"$round": ["$averageRating", 2]},
                "highestRating": 1,
            }
        },
    ]


def _most_recent(books: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    latest = None
    for book in books:
        published = book.get("publishedDate")
        if latest is None:
            latest = book
        elif isinstance(published, datetime):
            current = latest.get("publishedDate")
            if not isinstance(current, datetime) or published > current:
                latest = book
    return latest


def summarize_author_books(books: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Derived statistics for one author's books.

    ``books`` are stored book documents, with ``category`` optionally
    populated to a dict carrying ``name``.

    Returns:
        Dictionary with totals, stock counts, distinct genres and category
        names, the highest-rated book (None unless some rating is above 0)
        and the most recently published book.
    """
    total = len(books)
    ratings = [book.get("rating") or 0 for book in books]

    genres: List[str] = []
    categories: List[str] = []
    for book in books:
        genre = book.get("genre")
        if genre and genre not in genres:
            genres.append(genre)
        category = book.get("category")
        name = category.get("name") if isinstance(category, dict) else None
        if name and name not in categories:
            categories.append(name)

    highest = None
    for book, rating in zip(books, ratings):
        if rating > ((highest or {}).get("rating") or 0):
            highest = book

    in_stock = sum(1 for book in books if book.get("inStock"))

    return {
        "totalBooks": total,
        "averageRating": round(sum(ratings) / total, 2) if total else 0,
        "totalPages": sum(book.get("pages") or 0 for book in books),
        "genres": genres,
        "categories": categories,
        "inStockBooks": in_stock,
        "outOfStockBooks": total - in_stock,
        "highestRatedBook": highest,
        "mostRecentBook": _most_recent(books),
    }
