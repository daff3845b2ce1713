"""
Stateful stand-in for the Motor collections used by the services.

Only the query, update and aggregation operators the services issue are
understood. Documents are deep-copied on the way in and out, so callers see
the same isolation they would get from a real database.
"""
import copy
from types import SimpleNamespace
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

COLLECTIONS = ("users", "restaurants", "products", "orders", "reviews", "riders", "carts", "audit_logs")


# --- QUERY MATCHING ---

def _values(doc, path):
    """Every value reachable at a dotted path, descending into arrays."""
    current = [doc]
    for part in path.split("."):
        found = []
        for value in current:
            if isinstance(value, dict):
                if part in value:
                    found.append(value[part])
            elif isinstance(value, list):
                found.extend(item[part] for item in value if isinstance(item, dict) and part in item)
        current = found
    return current

def _is_operator_doc(condition):
    return isinstance(condition, dict) and bool(condition) and all(k.startswith("$") for k in condition)

def _equals(value, condition):
    if value == condition:
        return True
    return isinstance(value, list) and not isinstance(condition, list) and condition in value

def _compare(values, test):
    return any(v is not None and not isinstance(v, list) and test(v) for v in values)

def _apply_operator(values, op, arg):
    if op == "$exists":
        return bool(values) == bool(arg)
    if op == "$in":
        return any(_equals(v, candidate) for v in values for candidate in arg) or (None in arg and not values)
    if op == "$ne":
        return not _matches_value(values, arg)
    if op == "$size":
        return any(isinstance(v, list) and len(v) == arg for v in values)
    if op == "$gte":
        return _compare(values, lambda v: v >= arg)
    if op == "$gt":
        return _compare(values, lambda v: v > arg)
    if op == "$lte":
        return _compare(values, lambda v: v <= arg)
    if op == "$lt":
        return _compare(values, lambda v: v < arg)
    raise NotImplementedError(f"query operator {op}")

def _matches_value(values, condition):
    if _is_operator_doc(condition):
        return all(_apply_operator(values, op, arg) for op, arg in condition.items())
    if condition is None:
        return not values or any(v is None for v in values)
    return any(_equals(v, condition) for v in values)

def matches(doc, query) -> bool:
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, q) for q in condition):
                return False
        elif key == "$and":
            if not all(matches(doc, q) for q in condition):
                return False
        elif not _matches_value(_values(doc, key), condition):
            return False
    return True


# --- UPDATES ---

def _positional(items, array_path, query):
    prefix = array_path + "."
    for key, condition in query.items():
        if key.startswith(prefix):
            sub_query = {key[len(prefix):]: condition}
            for index, item in enumerate(items):
                if matches(item, sub_query):
                    return index
    raise ValueError(f"positional operator did not find a match for {array_path}")

def _locate(doc, path, query):
    """Container and key for a dotted update path, resolving `$` against the query."""
    parts = path.split(".")
    container = doc
    for depth, part in enumerate(parts):
        if isinstance(container, list):
            key = _positional(container, ".".join(parts[:depth]), query) if part == "$" else int(part)
        else:
            key = part
        if depth == len(parts) - 1:
            return container, key
        if isinstance(container, dict):
            container = container.setdefault(key, {})
        else:
            container = container[key]

def _get(container, key, default=None):
    if isinstance(container, list):
        return container[key]
    return container.get(key, default)

def apply_update(doc, update, query, inserting=False):
    for op, fields in update.items():
        if op == "$setOnInsert" and not inserting:
            continue
        for path, value in fields.items():
            container, key = _locate(doc, path, query)
            if op in ("$set", "$setOnInsert"):
                container[key] = copy.deepcopy(value)
            elif op == "$inc":
                container[key] = (_get(container, key, 0) or 0) + value
            elif op == "$push":
                container.setdefault(key, []).append(copy.deepcopy(value))
            elif op == "$pull":
                keep = []
                for item in _get(container, key, []) or []:
                    hit = matches(item, value) if isinstance(value, dict) else item == value
                    if not hit:
                        keep.append(item)
                container[key] = keep
            elif op == "$unset":
                container.pop(key, None)
            else:
                raise NotImplementedError(f"update operator {op}")

def _upsert_seed(query):
    return {
        key: copy.deepcopy(condition)
        for key, condition in query.items()
        if not key.startswith("$") and "." not in key and not _is_operator_doc(condition)
    }

def project(doc, projection):
    if not projection:
        return copy.deepcopy(doc)
    if any(v for k, v in projection.items() if k != "_id") or projection.get("_id") == 1:
        out = {k: doc[k] for k, v in projection.items() if v and k in doc}
        if projection.get("_id", 1) and "_id" in doc:
            out["_id"] = doc["_id"]
    else:
        out = {k: v for k, v in doc.items() if k not in projection}
    return copy.deepcopy(out)


# --- AGGREGATION ---

def _field(value, parts):
    for index, part in enumerate(parts):
        if isinstance(value, list):
            mapped = (_field(item, parts[index:]) for item in value)
            return [v for v in mapped if v is not None]
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value

def evaluate(doc, expr):
    if isinstance(expr, str) and expr.startswith("$"):
        return _field(doc, expr[1:].split("."))
    if isinstance(expr, list):
        return [evaluate(doc, e) for e in expr]
    if not isinstance(expr, dict):
        return expr
    if len(expr) == 1:
        op, arg = next(iter(expr.items()))
        if op == "$ifNull":
            for candidate in arg:
                value = evaluate(doc, candidate)
                if value is not None:
                    return value
            return None
        if op == "$arrayElemAt":
            array, index = evaluate(doc, arg[0]), evaluate(doc, arg[1])
            if not isinstance(array, list) or not -len(array) <= index < len(array):
                return None
            return array[index]
        if op == "$eq":
            return evaluate(doc, arg[0]) == evaluate(doc, arg[1])
        if op == "$cond":
            if isinstance(arg, dict):
                arg = [arg["if"], arg["then"], arg["else"]]
            return evaluate(doc, arg[1]) if evaluate(doc, arg[0]) else evaluate(doc, arg[2])
        if op.startswith("$"):
            raise NotImplementedError(f"expression operator {op}")
    return {k: evaluate(doc, v) for k, v in expr.items()}

def _sort_key(value):
    return (value is not None, value)

def sort_docs(docs, args):
    for field, direction in reversed(list(args)):
        docs.sort(key=lambda d: _sort_key(_field(d, field.split("."))), reverse=direction < 0)
    return docs

def _group(docs, args):
    groups = {}
    for doc in docs:
        key = evaluate(doc, args["_id"])
        bucket = groups.setdefault(key, {"_id": key, "__avg": {}})
        for name, accumulator in args.items():
            if name == "_id":
                continue
            (op, arg), = accumulator.items()
            value = evaluate(doc, arg)
            if op == "$sum":
                bucket[name] = bucket.get(name, 0) + (value if isinstance(value, (int, float)) else 0)
            elif op == "$avg":
                if isinstance(value, (int, float)):
                    bucket["__avg"].setdefault(name, []).append(value)
            else:
                raise NotImplementedError(f"accumulator {op}")
    results = []
    for bucket in groups.values():
        averages = bucket.pop("__avg")
        for name, accumulator in args.items():
            if name != "_id" and "$avg" in accumulator:
                samples = averages.get(name)
                bucket[name] = sum(samples) / len(samples) if samples else None
        results.append(bucket)
    return results

def _project_stage(doc, args):
    if all(v in (0, False) for v in args.values()):
        return {k: v for k, v in doc.items() if k not in args}
    out = {"_id": doc.get("_id")} if args.get("_id", 1) else {}
    for key, value in args.items():
        if key == "_id":
            continue
        if value is True or value == 1:
            if key in doc:
                out[key] = doc[key]
        elif value not in (0, False):
            out[key] = evaluate(doc, value)
    return out


class MemoryCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        args = key if isinstance(key, list) else [(key, direction)]
        sort_docs(self._docs, args)
        return self

    def skip(self, count):
        self._docs = self._docs[count:]
        return self

    def limit(self, count):
        if count:
            self._docs = self._docs[:count]
        return self

    async def to_list(self, length=None):
        return self._docs[:length] if length else list(self._docs)


class MemoryCollection:
    def __init__(self, database, name):
        self.database = database
        self.name = name
        self.docs = []

    def _matching(self, query):
        return [d for d in self.docs if matches(d, query)]

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        if any(d["_id"] == document["_id"] for d in self.docs):
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} index: _id_")
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def find_one(self, query=None, projection=None):
        found = self._matching(query)
        return project(found[0], projection) if found else None

    def find(self, query=None, projection=None):
        return MemoryCursor([project(d, projection) for d in self._matching(query)])

    async def count_documents(self, query):
        return len(self._matching(query))

    async def _modify(self, query, update, upsert):
        found = self._matching(query)
        if found:
            before = copy.deepcopy(found[0])
            apply_update(found[0], update, query)
            return before, found[0], None
        if not upsert:
            return None, None, None
        doc = _upsert_seed(query)
        apply_update(doc, update, query, inserting=True)
        await self.insert_one(doc)
        return None, self.docs[-1], doc["_id"]

    async def update_one(self, query, update, upsert=False):
        before, after, upserted_id = await self._modify(query, update, upsert)
        matched = 1 if before is not None else 0
        return SimpleNamespace(matched_count=matched, modified_count=matched, upserted_id=upserted_id)

    async def find_one_and_update(self, query, update, projection=None, upsert=False,
                                  return_document=ReturnDocument.BEFORE):
        before, after, _ = await self._modify(query, update, upsert)
        if return_document == ReturnDocument.AFTER:
            return project(after, projection) if after is not None else None
        return project(before, projection) if before is not None else None

    async def find_one_and_delete(self, query, projection=None):
        found = self._matching(query)
        if not found:
            return None
        self.docs.remove(found[0])
        return project(found[0], projection)

    async def delete_one(self, query):
        found = self._matching(query)
        if found:
            self.docs.remove(found[0])
        return SimpleNamespace(deleted_count=len(found[:1]))

    async def delete_many(self, query):
        found = self._matching(query)
        self.docs = [d for d in self.docs if d not in found]
        return SimpleNamespace(deleted_count=len(found))

    async def create_index(self, *args, **kwargs):
        return None

    def aggregate(self, pipeline):
        return MemoryCursor(self._run(copy.deepcopy(self.docs), pipeline))

    def _run(self, docs, pipeline):
        for stage in pipeline:
            (name, args), = stage.items()
            if name == "$match":
                docs = [d for d in docs if matches(d, args)]
            elif name == "$lookup":
                foreign = self.database[args["from"]].docs
                for doc in docs:
                    local = _field(doc, args["localField"].split("."))
                    doc[args["as"]] = [
                        copy.deepcopy(f) for f in foreign
                        if matches(f, {args["foreignField"]: {"$in": local if isinstance(local, list) else [local]}})
                    ]
            elif name == "$addFields":
                for doc in docs:
                    doc.update({key: evaluate(doc, expr) for key, expr in args.items()})
            elif name == "$project":
                docs = [_project_stage(d, args) for d in docs]
            elif name == "$sort":
                docs = sort_docs(docs, args.items())
            elif name == "$skip":
                docs = docs[args:]
            elif name == "$limit":
                docs = docs[:args]
            elif name == "$group":
                docs = _group(docs, args)
            elif name == "$facet":
                docs = [{key: self._run(copy.deepcopy(docs), sub) for key, sub in args.items()}]
            else:
                raise NotImplementedError(f"aggregation stage {name}")
        return docs


class MemoryDatabase:
    def __init__(self):
        self._collections = {name: MemoryCollection(self, name) for name in COLLECTIONS}

    def __getitem__(self, name) -> MemoryCollection:
        return self._collections[name]

    def __getattr__(self, name) -> MemoryCollection:
        try:
            return self.__dict__["_collections"][name]
        except KeyError:
            raise AttributeError(name)
