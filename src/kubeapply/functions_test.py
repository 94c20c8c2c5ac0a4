import bcrypt
import pytest

from kubeapply.functions import HELPER_FUNCTIONS, MANIFEST_FUNCTIONS


def test__trunc__negative_length_keeps_the_tail() -> None:
    trunc = HELPER_FUNCTIONS["trunc"]
    assert trunc("kubernetes", 4) == "kube"
    assert trunc("kubernetes", -4) == "etes"


def test__case_conversion() -> None:
    assert HELPER_FUNCTIONS["snakecase"]("clusterManagerName") == "cluster_manager_name"
    assert HELPER_FUNCTIONS["kebabcase"]("cluster_manager-name") == "cluster-manager-name"
    assert HELPER_FUNCTIONS["camelcase"]("cluster-manager") == "ClusterManager"


def test__indent_and_nindent() -> None:
    assert HELPER_FUNCTIONS["indent"]("a: 1\nb: 2", 2) == "  a: 1\n  b: 2"
    assert HELPER_FUNCTIONS["nindent"]("a: 1", 4) == "\n    a: 1"


def test__quote__skips_none() -> None:
    assert HELPER_FUNCTIONS["quote"]("a", None, 1) == '"a" "1"'
    assert HELPER_FUNCTIONS["squote"]("a") == "'a'"


def test__encoding() -> None:
    assert HELPER_FUNCTIONS["b64enc"]("admin") == "YWRtaW4="
    assert HELPER_FUNCTIONS["b64dec"]("YWRtaW4=") == "admin"
    assert MANIFEST_FUNCTIONS["encodeBase64"](b"admin") == "YWRtaW4="
    assert HELPER_FUNCTIONS["sha256sum"]("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test__randAlphaNum__length_and_alphabet() -> None:
    value = HELPER_FUNCTIONS["randAlphaNum"](32)
    assert len(value) == 32
    assert value.isalnum()
    assert HELPER_FUNCTIONS["randNumeric"](8).isdigit()


def test__htpasswd__produces_verifiable_bcrypt_hash() -> None:
    entry = HELPER_FUNCTIONS["htpasswd"]("admin", "secret")

    username, hashed = entry.split(":", 1)
    assert username == "admin"
    assert bcrypt.checkpw(b"secret", hashed.encode("utf-8"))


def test__dict__from_pairs_and_keywords() -> None:
    assert HELPER_FUNCTIONS["dict"]("a", 1, "b", 2) == {"a": 1, "b": 2}
    assert HELPER_FUNCTIONS["dict"](a=1) == {"a": 1}
    with pytest.raises(ValueError, match="even number"):
        HELPER_FUNCTIONS["dict"]("a")


def test__merge__keeps_existing_keys() -> None:
    dest = {"a": 1, "nested": {"x": 1}}
    result = HELPER_FUNCTIONS["merge"](dest, {"a": 2, "b": 3, "nested": {"x": 2, "y": 2}})

    assert result is dest
    assert result == {"a": 1, "b": 3, "nested": {"x": 1, "y": 2}}


def test__coalesce_and_ternary() -> None:
    assert HELPER_FUNCTIONS["coalesce"](None, "", 0, "x") == "x"
    assert HELPER_FUNCTIONS["coalesce"](None, "") is None
    assert HELPER_FUNCTIONS["ternary"](True, "yes", "no") == "yes"
    assert HELPER_FUNCTIONS["ternary"]([], "yes", "no") == "no"


def test__required__accepts_falsy_scalars() -> None:
    required = MANIFEST_FUNCTIONS["required"]
    assert required(0, "missing") == 0
    assert required(False, "missing") is False
    with pytest.raises(ValueError, match="image is required"):
        required("", "image is required")
    with pytest.raises(ValueError, match="image is required"):
        required(None, "image is required")


def test__yaml_and_json_conversion() -> None:
    value = {"b": 1, "a": [1, 2]}

    assert MANIFEST_FUNCTIONS["toYaml"](value) == "b: 1\na:\n- 1\n- 2"
    assert MANIFEST_FUNCTIONS["fromYaml"]("b: 1\na: [1, 2]\n") == value
    assert MANIFEST_FUNCTIONS["toJson"](value) == '{"b":1,"a":[1,2]}'
    assert MANIFEST_FUNCTIONS["fromJson"]('{"b":1,"a":[1,2]}') == value
