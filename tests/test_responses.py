import pytest
from pydantic import ValidationError

from tsj.responses import Pagination, PaginationReq, Result


def test_result_omits_empty_fields():
    assert Result(data=[1]).to_dict() == {"data": [1]}


def test_result_full():
    body = Result(request_id="r", data={"a": 1}, pagination=Pagination(total=3)).to_dict()
    assert body == {"requestId": "r", "data": {"a": 1}, "pagination": {"total": 3}}


def test_result_keeps_null_data():
    assert Result().to_dict() == {"data": None}


def test_pagination_req_defaults_and_parsing():
    assert PaginationReq().limit == 0
    req = PaginationReq.model_validate({"limit": "20", "offset": 5})
    assert (req.limit, req.offset) == (20, 5)
    with pytest.raises(ValidationError):
        PaginationReq.model_validate({"limit": "many"})