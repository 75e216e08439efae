import base64

import jwt

from sui_rpc import SuiRpcClient


def make_object(object_id, fields, type_=None):
    return {
        "objectId": object_id,
        "version": "1",
        "type": type_,
        "content": {
            "dataType": "moveObject",
            "type": type_,
            "fields": dict({"id": {"id": object_id}}, **fields),
        },
    }


def make_profile(object_id, owner, username, liked_posts=(), image_url=""):
    return make_object(object_id, {
        "owner": owner,
        "username": username,
        "bio": "",
        "image_url": image_url,
        "created_at_ms": "1700000000000",
        "liked_posts": {"type": "0x2::vec_set::VecSet<0x2::object::ID>", "fields": {"contents": list(liked_posts)}},
    })


def make_post(object_id, profile_id, author, content, like_count="0"):
    return make_object(object_id, {
        "author_profile_id": profile_id,
        "author_address": author,
        "content": content,
        "image_url": "",
        "created_at_ms": "1700000000000",
        "like_count": like_count,
    })


class FakeRpc(SuiRpcClient):
    """Answers JSON-RPC methods from in-memory objects and events."""

    def __init__(self):
        super().__init__("http://fullnode.invalid")
        self.objects = {}
        self.events = {}
        self.dynamic_fields = {}
        self.calls = []
        self.executed = []
        self.effects_status = "success"
        self.coins = [{"coinObjectId": "0xc01n", "balance": "5000000000"}]

    def add(self, obj):
        self.objects[obj["objectId"]] = obj
        return obj

    def emit(self, event_type, parsed):
        # newest first, like a descending query
        self.events.setdefault(event_type, []).insert(0, parsed)

    def _lookup(self, object_id):
        if object_id in self.objects:
            return {"data": self.objects[object_id]}
        return {"error": {"code": "notExists", "object_id": object_id}}

    def call(self, method, params):
        self.calls.append((method, params))
        if method == "sui_getObject":
            return self._lookup(params[0])
        if method == "sui_multiGetObjects":
            return [self._lookup(object_id) for object_id in params[0]]
        if method == "suix_queryEvents":
            event_type = params[0]["MoveEventType"]
            cursor, limit = params[1], params[2]
            start = int(cursor["eventSeq"]) if cursor else 0
            events = self.events.get(event_type, [])
            page = events[start:start + limit]
            has_next = start + limit < len(events)
            return {
                "data": [{"parsedJson": p} for p in page],
                "nextCursor": {"txDigest": "D", "eventSeq": str(start + limit)} if has_next else None,
                "hasNextPage": has_next,
            }
        if method == "suix_getDynamicFieldObject":
            value = params[1]["value"]
            if value in self.dynamic_fields:
                return {"data": self.dynamic_fields[value]}
            return {"error": {"code": "dynamicFieldNotFound"}}
        if method == "unsafe_moveCall":
            function = params[3]
            return {"txBytes": base64.b64encode(f"tx:{function}".encode()).decode()}
        if method == "unsafe_paySui":
            return {"txBytes": base64.b64encode(b"tx:pay_sui").decode()}
        if method == "suix_getCoins":
            return {"data": self.coins, "hasNextPage": False}
        if method == "suix_getBalance":
            return {"coinType": params[1], "totalBalance": "5000000000"}
        if method == "sui_executeTransactionBlock":
            self.executed.append(params)
            status = {"status": self.effects_status}
            if self.effects_status != "success":
                status["error"] = "MoveAbort(1)"
            return {"digest": f"DIGEST{len(self.executed)}", "effects": {"status": status}, "objectChanges": []}
        raise AssertionError(f"unexpected RPC method {method}")

    def methods(self):
        return [method for method, _ in self.calls]


ZK_PROOF = {
    "proofPoints": {"a": ["1", "2"], "b": [["3", "4"], ["5", "6"]], "c": ["7"]},
    "issBase64Details": {"value": "yJpc3Mi", "indexMod4": 1},
    "headerBase64": "eyJhbGciOiJSUzI1NiJ9",
}


class FakeEnoki:
    """Stands in for EnokiClient; nonce n0nce, max epoch 42, address 0xzkuser."""

    def __init__(self):
        self.proof_requests = []

    def create_nonce(self, ephemeral_public_key, additional_epochs=2):
        self.ephemeral_public_key = ephemeral_public_key
        return {"nonce": "n0nce", "randomness": "12345", "epoch": 40, "maxEpoch": 42}

    def get_address(self, token):
        return {"salt": "999", "address": "0xzkuser"}

    def create_proof(self, token, ephemeral_public_key, max_epoch, randomness):
        self.proof_requests.append((ephemeral_public_key, max_epoch, randomness))
        return dict(ZK_PROOF, addressSeed="31337")


def google_jwt(nonce="n0nce", aud="client-id"):
    claims = {"iss": "https://accounts.google.com", "sub": "1234", "aud": aud, "nonce": nonce}
    return jwt.encode(claims, "not-google", algorithm="HS256")
